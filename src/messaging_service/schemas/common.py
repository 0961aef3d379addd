from pydantic import BaseModel


class Message(BaseModel):
    """Error body returned by every handler."""

    detail: str
    code: str | None = None


class SuccessResponse(BaseModel):
    success: bool = True


class UpdatedResponse(SuccessResponse):
    updated: int = 0
