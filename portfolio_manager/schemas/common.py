from pydantic import BaseModel, Field

TICKER_PATTERN = r"^[A-Za-z0-9.\-]{1,10}$"


class ErrorResponse(BaseModel):
    """Error response schema"""
    detail: str = Field(..., description="Error message")
    error_code: str = Field(..., description="Error code for client handling")
