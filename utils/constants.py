"""
Shared constants for the classification relay.

Environment-specific configuration goes in app_settings/settings.py (Pydantic settings).
This module is for true constants that don't change between environments.
"""

# =============================================================================
# CLASSIFICATION
# =============================================================================

# Labels the remote model is asked to choose from
KNOWN_CATEGORIES = ("metal", "clothes", "paper", "plastic")

# Sent verbatim alongside the uploaded image
CLASSIFICATION_PROMPT = (
    "Classify this image as 'metal', 'clothes', 'paper', 'plastic'. "
    "DON'T GIVE ANYTHING ELSE AS ANSWER."
)


# =============================================================================
# UPLOADS
# =============================================================================

# Multipart form field carrying the image
UPLOAD_FIELD = "file"

SCRATCH_PREFIX = "capture_"
SCRATCH_SUFFIX = ".jpg"
