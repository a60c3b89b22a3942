"""FastAPI routes for prompt workflow sessions."""

from fastapi import APIRouter, File, HTTPException, Request, UploadFile
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from controllers.session_controller import (
	delete_session,
	edit_prompt,
	edit_requirements,
	get_session,
	remove_image,
	run_operation,
	start_session,
	upload_image,
)
from models.session_models import ImageSlot, OperationKind

router = APIRouter(prefix="/sessions", tags=["sessions"])


class TextPayload(BaseModel):
	text: str = ""


async def _guard(coro):
	try:
		return await coro
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.post("", status_code=201)
async def start_session_route(request: Request):
	return await _guard(start_session(request))


@router.get("/{session_id}")
async def get_session_route(request: Request, session_id: str):
	return await _guard(get_session(request, session_id))


@router.delete("/{session_id}")
async def delete_session_route(request: Request, session_id: str):
	return await _guard(delete_session(request, session_id))


@router.put("/{session_id}/target", summary="Upload or replace the target image")
async def put_target_route(request: Request, session_id: str, image: UploadFile = File(...)):
	return await _guard(upload_image(request, session_id, ImageSlot.TARGET, image))


@router.delete("/{session_id}/target")
async def delete_target_route(request: Request, session_id: str):
	return await _guard(remove_image(request, session_id, ImageSlot.TARGET))


@router.post("/{session_id}/inputs", summary="Append an input image")
async def post_input_route(request: Request, session_id: str, image: UploadFile = File(...)):
	return await _guard(upload_image(request, session_id, ImageSlot.INPUT, image))


@router.delete("/{session_id}/inputs/{index}")
async def delete_input_route(request: Request, session_id: str, index: int):
	return await _guard(remove_image(request, session_id, ImageSlot.INPUT, index))


@router.put("/{session_id}/reference", summary="Upload or replace the test-reference image")
async def put_reference_route(request: Request, session_id: str, image: UploadFile = File(...)):
	return await _guard(upload_image(request, session_id, ImageSlot.REFERENCE, image))


@router.delete("/{session_id}/reference")
async def delete_reference_route(request: Request, session_id: str):
	return await _guard(remove_image(request, session_id, ImageSlot.REFERENCE))


@router.put("/{session_id}/requirements")
async def put_requirements_route(request: Request, session_id: str, payload: TextPayload):
	return await _guard(edit_requirements(request, session_id, payload.text))


@router.put("/{session_id}/prompt")
async def put_prompt_route(request: Request, session_id: str, payload: TextPayload):
	return await _guard(edit_prompt(request, session_id, payload.text))


async def _operation_response(request: Request, session_id: str, kind: OperationKind, wait: bool) -> JSONResponse:
	status_code, snapshot = await _guard(run_operation(request, session_id, kind, wait))
	return JSONResponse(status_code=status_code, content=snapshot)


@router.post("/{session_id}/generate", summary="Derive a prompt from the uploaded images")
async def generate_route(request: Request, session_id: str, wait: bool = False):
	return await _operation_response(request, session_id, OperationKind.DERIVE, wait)


@router.post("/{session_id}/optimize", summary="Refine the current prompt")
async def optimize_route(request: Request, session_id: str, wait: bool = False):
	return await _operation_response(request, session_id, OperationKind.REFINE, wait)


@router.post("/{session_id}/test", summary="Render a test image from the current prompt")
async def run_test_route(request: Request, session_id: str, wait: bool = False):
	return await _operation_response(request, session_id, OperationKind.RENDER, wait)
