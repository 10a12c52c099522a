"""FastAPI routes exposing the analysis state and the user intents that change it."""

from fastapi import APIRouter, File, HTTPException, Request, UploadFile
from fastapi.responses import Response
from pydantic import BaseModel

from controllers.analysis_controller import AnalysisController
from models.errors import ParseError
from utils.languages import list_languages
from utils.media_validation import decode_image, parse_image_data_url, read_image_payload

router = APIRouter(prefix="/api", tags=["analysis"])


class LanguagePayload(BaseModel):
    language: str


def _get_controller(request: Request) -> AnalysisController:
    """Retrieve the shared analysis controller from the app state."""
    controller = getattr(request.app.state, "analysis_controller", None)
    if controller is None:
        raise HTTPException(status_code=500, detail="Analysis controller not initialized.")
    return controller


@router.get("/state")
async def get_state(request: Request):
    """Return the pending image, displayed result, busy flag, and last error."""
    return _get_controller(request).snapshot()


@router.post("/image", summary="Select a leaf image for analysis")
async def select_image(request: Request, file: UploadFile = File(...)):
    controller = _get_controller(request)
    try:
        image = await read_image_payload(file)
    except HTTPException:
        raise
    except Exception as exc:
        raise HTTPException(status_code=400, detail="Unable to read uploaded image.") from exc
    controller.select_image(image)
    return controller.snapshot()


@router.delete("/image")
async def clear_image(request: Request):
    controller = _get_controller(request)
    controller.clear()
    return controller.snapshot()


@router.post("/analyze", summary="Diagnose the pending image")
async def analyze(request: Request):
    """Run the diagnosis; failures are reported through `lastError` in the returned state."""
    controller = _get_controller(request)
    try:
        await controller.run_analysis()
    except Exception as exc:
        raise HTTPException(status_code=500, detail=str(exc))
    return controller.snapshot()


@router.get("/history")
async def list_history(request: Request):
    """Return the stored analyses, newest first."""
    return [record.summary() for record in _get_controller(request).history]


@router.post("/history/{record_id}/select")
async def select_history_record(request: Request, record_id: str):
    controller = _get_controller(request)
    try:
        await controller.select_from_history(record_id)
    except KeyError as exc:
        raise HTTPException(status_code=404, detail=f"Analysis {record_id} not found") from exc
    except Exception as exc:
        raise HTTPException(status_code=500, detail=str(exc))
    return controller.snapshot()


@router.get("/history/{record_id}/image")
async def get_history_image(request: Request, record_id: str) -> Response:
    """Return the stored image bytes of an analysis with their original mime type."""
    controller = _get_controller(request)
    try:
        record = controller.find_record(record_id)
    except KeyError as exc:
        raise HTTPException(status_code=404, detail=f"Analysis {record_id} not found") from exc
    try:
        image = parse_image_data_url(record.image_url)
        content = decode_image(image)
    except ParseError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return Response(content=content, media_type=image.mime_type)


@router.put("/language")
async def set_language(request: Request, payload: LanguagePayload):
    """Change the display language, retranslating the displayed analysis when needed."""
    controller = _get_controller(request)
    try:
        await controller.set_display_language(payload.language)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except Exception as exc:
        raise HTTPException(status_code=500, detail=str(exc))
    return controller.snapshot()


@router.get("/languages")
async def get_languages():
    return list_languages()
