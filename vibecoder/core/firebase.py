import logging
from typing import Any

import firebase_admin
from firebase_admin import auth, credentials

from vibecoder.config import get_settings

logger = logging.getLogger(__name__)


def initialize_firebase() -> bool:
  """Initialize the Firebase Admin SDK once; False when it is not configured."""
  if firebase_admin._apps:
    return True

  settings = get_settings()
  if not settings.firebase_project_id:
    logger.warning("Firebase Project ID not set. Firebase Admin SDK not initialized.")
    return False

  try:
    if settings.firebase_service_account_json_path:
      cred = credentials.Certificate(settings.firebase_service_account_json_path)
      firebase_admin.initialize_app(cred, {"projectId": settings.firebase_project_id})
    else:
      # Use default credentials (e.g. Google Application Default Credentials)
      firebase_admin.initialize_app(options={"projectId": settings.firebase_project_id})
    logger.info("Firebase Admin SDK initialized successfully.")
  except Exception as exc:  # noqa: BLE001
    logger.error("Failed to initialize Firebase Admin SDK: %s", exc)
    return False
  return True


def verify_id_token(id_token: str) -> dict[str, Any] | None:
  """Verify a Firebase ID token; None when it is invalid or Firebase is unavailable."""
  if not firebase_admin._apps and not initialize_firebase():
    return None

  try:
    return auth.verify_id_token(id_token)
  except Exception as exc:  # noqa: BLE001
    logger.warning("Token verification failed: %s", exc)
    return None
