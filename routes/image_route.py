from fastapi import APIRouter, HTTPException, Request

from controllers.session_controller import get_image
from models.session_models import ImageSlot

router = APIRouter()


@router.get("/sessions/{session_id}/images/{slot}")
async def get_session_image(request: Request, session_id: str, slot: ImageSlot, index: int = 0):
	"""Return the raw bytes of the image held by a session slot."""
	try:
		return await get_image(request, session_id, slot, index)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))


@router.get("/sessions/{session_id}/images/{slot}/thumbnail")
async def get_session_image_thumbnail(request: Request, session_id: str, slot: ImageSlot, index: int = 0):
	"""Return a PNG preview of the image held by a session slot."""
	try:
		return await get_image(request, session_id, slot, index, thumbnail=True)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))
