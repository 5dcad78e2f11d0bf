"""
KYC Intake Pipeline

This package contains the pipeline for KYC photo and document intake:
- Pixel statistics (brightness, contrast, blur, border uniformity, color balance)
- Image normalisation (square crop, border trimming, OCR enhancement)
- Photo, face, signature, card-side and OCR checks
- Weighted scoring and final status
- Back-of-licence OCR parsing
"""

__version__ = "1.0.0"
