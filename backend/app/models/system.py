from pydantic import BaseModel


class HealthResponse(BaseModel):
    status: str
    version: str
    dependencies: dict[str, str]
    providers: dict[str, bool]
