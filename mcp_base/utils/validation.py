"""JSON Schema validation for tool and prompt arguments.

Handlers compile their argument schemas once during setup and validate each
call against them::

    validator = SchemaValidator()
    validator.compile("echo_args", {"type": "object", ...})
    result = validator.validate("echo_args", arguments)
    if not result.success:
        return ToolResult.text(result.formatted_message(), is_error=True)
"""
import copy
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from jsonschema import Draft7Validator, validators
from jsonschema.exceptions import SchemaError

logger = logging.getLogger(__name__)


class SchemaCompilationError(Exception):
    """Raised when a schema is not a valid JSON Schema."""

    def __init__(self, message: str, schema: Any):
        super().__init__(message)
        self.schema = schema


class SchemaNotFoundError(KeyError):
    """Raised when validating against a schema id that was never compiled."""

    pass


@dataclass
class ValidationErrorDetail:
    instance_path: str
    schema_path: str
    keyword: str
    message: str


@dataclass
class ValidationResult:
    success: bool
    schema_id: str
    data: Any = None
    errors: List[ValidationErrorDetail] = field(default_factory=list)

    def formatted_message(self) -> str:
        lines = [f"Validation failed for schema '{self.schema_id}'"]
        for err in self.errors:
            lines.append(f"  - {err.instance_path or '/'}: {err.message}")
        return "\n".join(lines)


class SchemaValidationError(ValueError):
    """Raised by :meth:`SchemaValidator.validate_or_raise`."""

    def __init__(self, result: ValidationResult):
        super().__init__(result.formatted_message())
        self.result = result


def _extend_with_defaults(validator_class):
    """Validator class that fills in ``default`` values of object properties."""
    validate_properties = validator_class.VALIDATORS["properties"]

    def set_defaults(validator, properties, instance, schema):
        if isinstance(instance, dict):
            for name, subschema in properties.items():
                if isinstance(subschema, dict) and "default" in subschema:
                    instance.setdefault(name, copy.deepcopy(subschema["default"]))
        yield from validate_properties(validator, properties, instance, schema)

    return validators.extend(validator_class, {"properties": set_defaults})


_DefaultingValidator = _extend_with_defaults(Draft7Validator)


def _json_pointer(parts) -> str:
    return "".join(f"/{part}" for part in parts)


class SchemaValidator:
    """Compiles named JSON Schemas and validates values against them."""

    def __init__(self, use_defaults: bool = True):
        self.use_defaults = use_defaults
        self._validators: Dict[str, Draft7Validator] = {}

    def compile(self, schema_id: str, schema: Dict[str, Any]) -> None:
        """Check and cache a schema under ``schema_id``."""
        try:
            Draft7Validator.check_schema(schema)
        except SchemaError as e:
            raise SchemaCompilationError(
                f"Failed to compile schema '{schema_id}': {e.message}", schema
            ) from e

        cls = _DefaultingValidator if self.use_defaults else Draft7Validator
        self._validators[schema_id] = cls(schema)
        logger.debug(f"Compiled schema: {schema_id}")

    def has_schema(self, schema_id: str) -> bool:
        return schema_id in self._validators

    def remove_schema(self, schema_id: str) -> bool:
        return self._validators.pop(schema_id, None) is not None

    def validate(self, schema_id: str, value: Any) -> ValidationResult:
        """Validate ``value``; returns the (defaulted) value or the violations."""
        validator: Optional[Draft7Validator] = self._validators.get(schema_id)
        if validator is None:
            raise SchemaNotFoundError(
                f"Schema '{schema_id}' not found. Did you forget to compile it?"
            )

        data = copy.deepcopy(value) if self.use_defaults else value
        found = sorted(validator.iter_errors(data), key=lambda e: [str(p) for p in e.path])
        if not found:
            return ValidationResult(success=True, schema_id=schema_id, data=data)

        details = [
            ValidationErrorDetail(
                instance_path=_json_pointer(err.absolute_path),
                schema_path=_json_pointer(err.absolute_schema_path),
                keyword=str(err.validator),
                message=err.message,
            )
            for err in found
        ]
        logger.debug(f"Validation failed for {schema_id}: {len(details)} error(s)")
        return ValidationResult(success=False, schema_id=schema_id, errors=details)

    def validate_or_raise(self, schema_id: str, value: Any) -> Any:
        result = self.validate(schema_id, value)
        if not result.success:
            raise SchemaValidationError(result)
        return result.data
