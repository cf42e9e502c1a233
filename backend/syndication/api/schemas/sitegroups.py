from pydantic import BaseModel


class SelectionSubmission(BaseModel):
    sitegroups: list[str] | str | None = None


class SelectionResponse(BaseModel):
    owner_id: str
    sitegroups: list[str]
    stale: list[str]
