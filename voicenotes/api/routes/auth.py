"""
Authentication-state endpoints for the map annotation service.

The OAuth flow itself runs in an external UI; it hands the resulting
tokens to ``PUT /auth/credential``. The pipeline only reads them.
"""

import logging

from fastapi import APIRouter, Response

from voicenotes.core.exceptions import AnnotationError
from voicenotes.core.models import AuthStatusResponse, CredentialUpdate
from voicenotes.services.annotation import create_publisher
from voicenotes.services.auth import CredentialStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


async def _status(store: CredentialStore) -> AuthStatusResponse:
    credential = await store.get_credential()
    if credential is None:
        return AuthStatusResponse(authenticated=False)
    return AuthStatusResponse(
        authenticated=True,
        display_name=credential.display_name,
        can_refresh=credential.refresh_token is not None,
    )


@router.get("/status", response_model=AuthStatusResponse)
async def auth_status():
    """Report whether annotations can currently be published."""
    return await _status(CredentialStore())


@router.put("/credential", response_model=AuthStatusResponse)
async def save_credential(body: CredentialUpdate):
    """Store credential material, replacing any previous credential.

    When no display name is supplied it is looked up from the annotation
    service; a failed lookup is logged and otherwise ignored.
    """
    display_name = body.display_name
    if display_name is None:
        try:
            display_name = await create_publisher().fetch_display_name(body.access_token)
        except AnnotationError as exc:
            logger.warning("Could not fetch display name (non-fatal): %s", exc.detail)

    store = CredentialStore()
    await store.save_credential(
        access_token=body.access_token,
        refresh_token=body.refresh_token,
        display_name=display_name,
    )
    return await _status(store)


@router.delete("/credential", status_code=204)
async def clear_credential():
    """Forget the stored credential; subsequent annotations are DISABLED."""
    await CredentialStore().clear()
    return Response(status_code=204)
