from pydantic import BaseModel, Field, StrictStr

from models.webhook_payload import REPOSITORY_NAME_PATTERN


class DeployRequest(BaseModel):
    repository_name: StrictStr = Field(..., min_length=1, pattern=REPOSITORY_NAME_PATTERN)
