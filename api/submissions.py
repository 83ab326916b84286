from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse, JSONResponse

from api.cors import preflight_headers
from schemas.submission import SubmissionResponse
from services.ingestion import IngestionPipeline, IngestionRequest
from utils.case import dict_keys_to_camel

router = APIRouter(prefix="/api/submissions", tags=["submissions"])

_FORM_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")
# formData carries up to five embedded images
_MAX_FORM_PART_IMAGES = 6

INFO_PAGE = """<html><head><title>Investor onboarding</title></head><body>
<h1 style="font-family: Arial;">Investor onboarding endpoint</h1>
<p>Submit applications with a POST request from the onboarding form.</p>
</body></html>"""


def get_pipeline(request: Request) -> IngestionPipeline:
    return request.app.state.pipeline


def _text(value) -> str | None:
    # Uploaded files are not accepted in place of the JSON field
    return value if isinstance(value, str) else None


async def _read_request(request: Request, pipeline: IngestionPipeline) -> IngestionRequest:
    """Collect what the gates need without interpreting the payload yet."""
    form_data = form_origin = raw_body = None
    content_type = request.headers.get("content-type", "")
    if content_type.startswith(_FORM_TYPES):
        form = await request.form(max_part_size=pipeline.settings.max_image_bytes * _MAX_FORM_PART_IMAGES)
        form_data = _text(form.get("formData"))
        form_origin = _text(form.get("origin"))
    else:
        body = await request.body()
        raw_body = body.decode("utf-8", errors="replace") if body else None

    # Proxy headers are applied by uvicorn only for trusted proxies (run.py)
    client_ip = request.client.host if request.client else None

    return IngestionRequest(
        origin_header=request.headers.get("origin"),
        form_origin=form_origin or request.query_params.get("origin"),
        form_data=form_data,
        raw_body=raw_body,
        client_ip=client_ip,
        user_agent=request.headers.get("user-agent"),
    )


@router.options("")
async def submission_options(request: Request, pipeline: IngestionPipeline = Depends(get_pipeline)):
    origin = request.headers.get("origin") or request.query_params.get("origin")
    return JSONResponse({"status": "success"}, headers=preflight_headers(origin, pipeline.settings.origin_list))


@router.get("", response_class=HTMLResponse)
async def submission_info():
    return HTMLResponse(INFO_PAGE)


@router.post("", response_model=SubmissionResponse)
async def create_submission(request: Request, pipeline: IngestionPipeline = Depends(get_pipeline)):
    ingestion_request = await _read_request(request, pipeline)
    result = await pipeline.ingest(ingestion_request)
    return JSONResponse(
        dict_keys_to_camel({
            "success": True,
            "message": "Data saved successfully",
            "submission_id": result.submission_id,
        })
    )
