import logging

from fastapi import APIRouter, Depends

from coopvote.config import Settings
from coopvote.dependencies import get_app_settings, get_eligibility_gate
from coopvote.models.member_model import KioskLoginRequest, TokenResponse
from coopvote.security import session_token_for
from coopvote.services.eligibility import EligibilityGate

logger = logging.getLogger(__name__)

auth_router = APIRouter(prefix="/auth", tags=["Auth"])


@auth_router.post("/kiosk", response_model=TokenResponse)
def kiosk_login(
    login: KioskLoginRequest,
    gate: EligibilityGate = Depends(get_eligibility_gate),
    settings: Settings = Depends(get_app_settings),
):
    member = gate.kiosk_login(login.member_number)
    logger.info(f"Kiosk session opened for member {member['_id']}")
    return TokenResponse(access_token=session_token_for(member, settings), token_type="bearer")
