from typing import Any, Callable, Dict, Type, TypeVar

from pydantic import BaseModel

from compliance_engine.tools.logger import setup_logger

T = TypeVar("T", bound=BaseModel)

logger = setup_logger("compliance-engine.schema")


def _accepted_keys(model_cls: Type[BaseModel]) -> set:
    keys = set()
    for name, field in model_cls.model_fields.items():
        keys.add(name)
        if field.alias:
            keys.add(field.alias)
        if isinstance(field.validation_alias, str):
            keys.add(field.validation_alias)

    # camelCase keys are accepted by models built on an alias generator
    alias_generator = model_cls.model_config.get("alias_generator")
    validation_alias = getattr(alias_generator, "validation_alias", None)
    if callable(validation_alias):
        keys.update(validation_alias(name) for name in model_cls.model_fields)

    return keys


def build_model(
    model_cls: Type[T],
    data: Dict[str, Any],
    *,
    strict: bool = True,
    log_fn: Callable[[str], None] = logger.warning,
) -> T:
    """
    Schema-aware constructor for collaborator payloads.

    - strict=True  -> crash on schema drift
    - strict=False -> drop unknown fields, log them

    Example:
        >>> build_model(ClauseExtraction, {"clauseType": "SLA", "model": "x"},
        ...             strict=False)
    """

    allowed = _accepted_keys(model_cls)
    incoming = set(data.keys())

    extras = incoming - allowed

    if extras:
        log_fn(
            f"[SCHEMA-DRIFT] {model_cls.__name__} received extra fields: "
            f"{sorted(extras)}"
        )

        if strict:
            raise ValueError(
                f"Schema drift in {model_cls.__name__}: {sorted(extras)}"
            )

        data = {k: v for k, v in data.items() if k in allowed}

    return model_cls.model_validate(data)
