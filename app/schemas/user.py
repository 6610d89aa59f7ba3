from pydantic import BaseModel


class UserInfo(BaseModel):
    """Display data resolved through the identity lookup."""
    id: int
    name: str
    email: str
    role: str
