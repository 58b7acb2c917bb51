from typing import List, Optional

from pydantic import Field, model_validator

from compliance_engine.models.base import BoundaryModel
from compliance_engine.models.exception_request import ExceptionRequest
from compliance_engine.models.extraction import ClauseExtraction
from compliance_engine.models.policy import Policy


class WorkloadVersion(BoundaryModel):
    """
    One contract version as handed to the CLI / MCP surface: the clauses
    the extraction provider produced plus the exceptions on file.

    Exceptions may name a `clause_type` instead of a finding id; the
    engine binds them to the finding once the version is evaluated.
    """
    id: str
    version_number: Optional[int] = None
    extractions: List[ClauseExtraction] = Field(default_factory=list)
    exceptions: List[ExceptionRequest] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _stamp_exception_versions(cls, data):
        if not isinstance(data, dict) or not data.get("id"):
            return data

        stamped = []
        for ex in data.get("exceptions") or []:
            if isinstance(ex, dict) and not (
                ex.get("contract_version_id") or ex.get("contractVersionId")
            ):
                ex = {**ex, "contract_version_id": data["id"]}
            stamped.append(ex)

        return {**data, "exceptions": stamped}


class CompareRequest(BoundaryModel):
    from_version: str = Field(alias="from")
    to_version: str = Field(alias="to")


class Workload(BoundaryModel):
    contract_id: str
    policy: Optional[Policy] = None
    versions: List[WorkloadVersion] = Field(min_length=1)
    compare: Optional[CompareRequest] = None
