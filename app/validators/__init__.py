"""
app/validators package marker.
"""

from app.validators.sample_validator import DATE_FORMATS, SampleValidator

__all__ = [
    "DATE_FORMATS",
    "SampleValidator",
]
