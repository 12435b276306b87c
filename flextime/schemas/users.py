from datetime import datetime

from pydantic import BaseModel


class UserProfileResponse(BaseModel):
    uid: str
    email: str
    name: str
    created_at: datetime
