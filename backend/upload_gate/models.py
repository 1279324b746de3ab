"""
Shared Pydantic models describing JSON response payloads.
"""
from pydantic import BaseModel, ConfigDict, Field


class TokenResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    signed_request: str = Field(alias="signedRequest")
    url: str


class BurnerCredentialResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    access_key_id: str = Field(alias="AWS_ACCESS_KEY_ID")
    secret_access_key: str = Field(alias="AWS_SECRET_ACCESS_KEY")
    session_token: str = Field(alias="AWS_SESSION_TOKEN")
    expiration: str
    bucket: str
    region: str
    path: str
    url: str


class ErrorResponse(BaseModel):
    error: str
