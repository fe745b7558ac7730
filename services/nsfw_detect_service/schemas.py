# app/services/nsfw_detect_service/schemas.py
from pydantic import BaseModel, Field


class DetectResponse(BaseModel):
    success: bool = True
    nsfw: bool = Field(..., description="top-1 标签是否为 nsfw")


class DetectFailureResponse(BaseModel):
    success: bool = False
    error: str = "Something went wrong!"
    nsfw: bool


class ErrorResponse(BaseModel):
    error: str
