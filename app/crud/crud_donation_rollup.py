from pydantic import BaseModel

from app.crud.base import CRUDBase
from app.models.donation_rollup import DonationRollup


class CRUDDonationRollup(CRUDBase[DonationRollup, BaseModel, BaseModel]):
    """Rollups are only ever inserted through create_if_absent."""


donation_rollup = CRUDDonationRollup(DonationRollup)
