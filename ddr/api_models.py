from __future__ import annotations

from pydantic import BaseModel, Field


class DeploymentRequest(BaseModel):
    name: str = Field(
        ...,
        pattern=r"^[a-zA-Z0-9][a-zA-Z0-9_.-]{0,62}$",
        description="Deployment name; container names are derived from it",
    )
    image: str = Field(..., min_length=1, description="Docker image (name:tag)")
    replicas: int = Field(1, ge=0, le=100)
