from pydantic import AliasGenerator, BaseModel
from pydantic.alias_generators import to_camel


# -------------------------------------------------------------------
# Base (STRICT)
# -------------------------------------------------------------------

class StrictBaseModel(BaseModel):
    model_config = {
        "extra": "forbid",
    }


# -------------------------------------------------------------------
# Snapshot base (STRICT + IMMUTABLE)
# -------------------------------------------------------------------

class SnapshotModel(StrictBaseModel):
    """
    Base for values that are recorded once and never edited in place:
    findings, evaluation runs, aggregations and comparison results.

    Re-evaluation produces a new snapshot; it never mutates an old one.
    """

    model_config = {
        "extra": "forbid",
        "frozen": True,
    }


# -------------------------------------------------------------------
# Boundary base (collaborator payloads)
# -------------------------------------------------------------------

class BoundaryModel(SnapshotModel):
    """
    Inputs handed over by the policy, extraction and exception stores.

    Accepts both snake_case field names and the camelCase keys the
    upstream services emit; always serialises as snake_case.
    """

    model_config = {
        "extra": "forbid",
        "frozen": True,
        "populate_by_name": True,
        "alias_generator": AliasGenerator(validation_alias=to_camel),
    }
