# app/crud/crud_public_feed.py
from pydantic import BaseModel

from app.crud.base import CRUDBase
from app.models.public_feed import DonationComment, PublicDonor


class CRUDDonationComment(CRUDBase[DonationComment, BaseModel, BaseModel]):
    pass


class CRUDPublicDonor(CRUDBase[PublicDonor, BaseModel, BaseModel]):
    pass


donation_comment = CRUDDonationComment(DonationComment)
public_donor = CRUDPublicDonor(PublicDonor)
