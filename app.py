from fastapi import FastAPI, File, UploadFile, Form, HTTPException
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware

import logging
from typing import Optional

from pipeline.file_converter import DecodeError, UploadLimitError, check_upload_sizes
from pipeline.licence_ocr import parse_licence_back_from_ocr
from pipeline.run_pipeline import run_validation
from pipeline.utils import is_supported_upload
from config import PHOTO_TYPES, configure_logging, settings

configure_logging()
logger = logging.getLogger(__name__)

app = FastAPI(
    title="KYC Intake Service",
    description="Photo, signature and identity document validation with scoring",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


async def _read_upload(upload: Optional[UploadFile], field: str) -> Optional[bytes]:
    if upload is None or not upload.filename:
        return None
    if not is_supported_upload(upload.filename):
        raise HTTPException(status_code=400, detail=f"Unsupported file type for {field}: {upload.filename}")
    # One byte past the limit is enough to reject without buffering the rest
    return await upload.read(settings.KYC_FILE_MAX_SIZE_BYTES + 1)


def _limit_error(e: UploadLimitError) -> HTTPException:
    return HTTPException(
        status_code=400,
        detail={"error": str(e), "code": e.code, "details": e.details},
    )


# ------------------------
# KYC Validation API
# ------------------------
@app.post("/kyc/validate")
async def validate_kyc(
    photo: Optional[UploadFile] = File(None),
    signature: Optional[UploadFile] = File(None),
    front: Optional[UploadFile] = File(None),
    back: Optional[UploadFile] = File(None),
    photo_type: str = Form("passport"),
    back_text: Optional[str] = Form(None)
):
    """
    Validate a KYC submission: portrait photo, signature and document sides.
    Every part is optional; only submitted parts are scored.
    Supports JPG / PNG / HEIC / PDF uploads.
    """
    if photo_type not in PHOTO_TYPES:
        raise HTTPException(status_code=400, detail=f"Unknown photo_type: {photo_type}")

    uploads = {
        "photo": await _read_upload(photo, "photo"),
        "signature": await _read_upload(signature, "signature"),
        "front": await _read_upload(front, "front"),
        "back": await _read_upload(back, "back"),
    }
    if not any(uploads.values()) and back_text is None:
        raise HTTPException(status_code=400, detail="No document submitted")

    try:
        check_upload_sizes(uploads)
    except UploadLimitError as e:
        raise _limit_error(e)

    try:
        report = await run_in_threadpool(
            run_validation, photo_type=photo_type, back_text=back_text, **uploads
        )
    except UploadLimitError as e:
        raise _limit_error(e)
    except DecodeError as e:
        raise HTTPException(status_code=400, detail=f"Invalid image: {e}")
    except Exception as e:
        logger.exception("KYC validation failed")
        raise HTTPException(
            status_code=500,
            detail=f"KYC validation failed: {str(e)}"
        )

    return report.model_dump()


@app.post("/kyc/license/back/parse")
async def parse_licence_back(text: str = Form(...)):
    """Extract categories and dates from back-of-licence OCR text"""
    return parse_licence_back_from_ocr(text).to_dict()


# ------------------------
# Health Check
# ------------------------
@app.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "service": "kyc-intake"
    }


# ------------------------
# Local Dev Entry
# ------------------------
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
