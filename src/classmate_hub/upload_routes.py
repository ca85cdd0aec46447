"""
Image upload route (avatars and gallery images)
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Request, Response, UploadFile
from sqlalchemy.orm import Session

from .auth import get_current_claims, get_current_user, get_session_builder, set_session_cookie
from .auth_routes import session_payload
from .db.engine import get_db
from .exceptions import UploadInvalidTypeError, UploadNoFileError, UploadTooLargeError, ValidationFailedError
from .services.directory_service import DirectoryService
from .services.gallery_service import GALLERY_FOLDER
from .services.session_claims import SessionClaimsBuilder, SessionUser
from .services.storage_provider import EXTENSIONS

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/upload", tags=["upload"])

ALLOWED_CONTENT_TYPES = frozenset(EXTENSIONS)
MAX_UPLOAD_BYTES = 10 * 1024 * 1024
AVATAR_FOLDER = "avatars"


def read_upload(file: Optional[UploadFile]) -> bytes:
    """Validated bytes of an uploaded image"""
    if file is None or not file.filename:
        raise UploadNoFileError()
    if file.content_type not in ALLOWED_CONTENT_TYPES:
        raise UploadInvalidTypeError()

    # One byte past the limit is enough to know it is too large
    data = file.file.read(MAX_UPLOAD_BYTES + 1)
    if len(data) > MAX_UPLOAD_BYTES:
        raise UploadTooLargeError()
    if not data:
        raise UploadNoFileError()
    return data


@router.post("")
def upload_image(
    request: Request,
    response: Response,
    file: Optional[UploadFile] = File(None),
    type: str = Form("gallery"),
    current_user: SessionUser = Depends(get_current_user),
    current_claims: dict = Depends(get_current_claims),
    builder: SessionClaimsBuilder = Depends(get_session_builder),
    db: Session = Depends(get_db),
):
    """
    Store an image on the image host

    type=avatar replaces the user's avatar and returns a refreshed session;
    type=gallery returns the stored image for a following POST /api/photos.
    """
    if type not in ("avatar", "gallery"):
        raise ValidationFailedError("Upload type must be 'avatar' or 'gallery'", field="type")

    data = read_upload(file)
    image_host = request.app.state.image_host

    if type == "avatar":
        result = image_host.upload(
            data, file.content_type, AVATAR_FOLDER, public_id=str(current_user.id), overwrite=True
        )
        user = DirectoryService(db).get_user(current_user.id)
        user.avatar = result.url
        db.commit()
        logger.info(f"User {current_user.id} uploaded a new avatar")

        session = builder.refresh(current_claims, {"avatar": result.url})
        set_session_cookie(response, session, request.app.state.settings)
        body = {
            "url": result.url,
            "public_id": result.public_id,
            "thumbnail_url": result.thumbnail_url,
            "message": "Avatar uploaded successfully!",
        }
        body.update(session_payload(session))
        return body

    result = image_host.upload(data, file.content_type, GALLERY_FOLDER)
    logger.info(f"User {current_user.id} uploaded gallery image {result.public_id}")
    return {
        "url": result.url,
        "public_id": result.public_id,
        "thumbnail_url": result.thumbnail_url,
    }
