from pydantic import BaseModel, ConfigDict, Field, StrictStr

# One audit line per delivery: no control characters in the name.
REPOSITORY_NAME_PATTERN = r"^[^\x00-\x1f\x7f]+$"


class Repository(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: StrictStr = Field(..., min_length=1, pattern=REPOSITORY_NAME_PATTERN)


class WebhookPayload(BaseModel):
    # Senders include plenty of other fields; only repository.name matters here.
    model_config = ConfigDict(extra="ignore")

    repository: Repository
