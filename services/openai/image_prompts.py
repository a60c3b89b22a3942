"""Prompt builders for prompt derivation and refinement."""


def build_derive_system_prompt() -> str:
    """Return the system prompt used when deriving a prompt from images."""
    return (
        "You are an expert prompt engineer for image generation and image editing models. "
        "You study a target image and write the single prompt that would let a model "
        "recreate it, or transform the provided input images into it. "
        "Describe subject, composition, style, lighting, colour palette and any text in the image. "
        "Reply with the prompt only, without preamble, headings or quotes."
    )


def build_derive_user_prompt(input_count: int, extra_instructions: str) -> str:
    """Return the user prompt tailored to the number of input images and extra requirements."""
    if input_count:
        plural = "s" if input_count > 1 else ""
        task = (
            f"The first image is the target. The following {input_count} image{plural} "
            f"are the input image{plural} the prompt will be applied to. "
            "Write an editing prompt that turns the input images into the target, "
            "referring to the inputs by their order where needed."
        )
    else:
        task = "The image is the target. Write a generation prompt that recreates it."

    requirements = extra_instructions.strip()
    if requirements:
        task += f"\n\nAdditional requirements from the user:\n{requirements}"
    return task


def build_refine_system_prompt() -> str:
    """Return the system prompt used when optimizing an existing prompt."""
    return (
        "You improve prompts for image generation and editing models. "
        "Keep the user's intent, make the wording specific and unambiguous, "
        "add concrete visual detail where it is missing and remove contradictions. "
        "Reply with the improved prompt only."
    )
