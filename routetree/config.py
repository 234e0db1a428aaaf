"""Configuration model for the routetree Server."""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class ServerConfig(BaseModel):
    """Configuration model for the routetree Server.

    Attributes:
        title: API title
        description: API description
        version: API version
        debug: Enable FastAPI debug mode
        host: Server host address
        port: Server port number
        docs_url: OpenAPI documentation URL
        redoc_url: ReDoc documentation URL
        log_level: Logging level
        uvicorn_options: Extra keyword arguments for ``uvicorn.Config``
    """

    # API Configuration
    title: str = "routetree API"
    description: str = "API built from a routetree route tree"
    version: str = "1.0.0"
    debug: bool = False

    # Server Configuration
    host: str = "0.0.0.0"
    port: int = Field(default=8000, ge=0, le=65535)
    docs_url: Optional[str] = "/docs"
    redoc_url: Optional[str] = "/redoc"

    # Logging Configuration
    log_level: str = "info"

    uvicorn_options: Dict[str, Any] = Field(default_factory=dict)


__all__ = ["ServerConfig"]
