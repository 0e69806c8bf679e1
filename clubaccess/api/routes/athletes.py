"""
Athlete routes.
"""

from fastapi import APIRouter, status

from clubaccess.schemas.account import AthleteCreate, AthleteResponse
from clubaccess.api.dependencies.auth import CurrentActor
from clubaccess.api.dependencies.services import Accounts

router = APIRouter()


@router.post("", response_model=AthleteResponse, status_code=status.HTTP_201_CREATED)
async def create_athlete(data: AthleteCreate, accounts: Accounts, actor: CurrentActor):
    """Add an athlete profile without an account (requires athletes.create)."""
    athlete = (await accounts.create_athlete(actor, data)).unwrap()
    return AthleteResponse.model_validate(athlete)
