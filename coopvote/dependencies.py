from datetime import datetime
from typing import Callable

from fastapi import Depends, Request

from coopvote.config import Settings
from coopvote.database.connection import Database
from coopvote.services.anonymity import AnonymityProjector
from coopvote.services.ballots import BallotService
from coopvote.services.eligibility import EligibilityGate
from coopvote.services.tally import TallyEngine


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_db(request: Request) -> Database:
    return request.app.state.db


def get_clock(request: Request) -> Callable[[], datetime]:
    return request.app.state.clock


def get_eligibility_gate(
    db: Database = Depends(get_db), clock: Callable[[], datetime] = Depends(get_clock)
) -> EligibilityGate:
    return EligibilityGate(db, clock=clock)


def get_ballot_service(
    db: Database = Depends(get_db), clock: Callable[[], datetime] = Depends(get_clock)
) -> BallotService:
    return BallotService(db, clock=clock)


def get_tally_engine(db: Database = Depends(get_db)) -> TallyEngine:
    return TallyEngine(db)


def get_projector() -> AnonymityProjector:
    return AnonymityProjector()
