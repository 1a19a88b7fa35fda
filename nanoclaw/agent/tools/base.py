"""Base class for agent tools."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any


@dataclass
class ToolResult:
    """Outcome of one tool execution.

    ``output`` is the payload when ``success`` is true, ``error`` when false.
    """

    success: bool
    output: str = ""
    error: str | None = None

    @classmethod
    def ok(cls, output: str) -> "ToolResult":
        return cls(success=True, output=output)

    @classmethod
    def fail(cls, error: str) -> "ToolResult":
        return cls(success=False, output="", error=error)

    def to_content(self) -> str:
        """Render as tool-message content for the conversation."""
        if self.success:
            return self.output
        return f"Error: {self.error}"


class Tool(ABC):
    """
    Abstract base class for agent tools.

    Subclasses declare ``name``, ``description`` and ``parameters`` (a JSON
    schema of type object), usually as class attributes, and implement
    ``execute``. Well-behaved tools report failures through ``ToolResult``
    instead of raising; the registry catches anything that escapes.
    """

    name: str = ""
    description: str = ""
    parameters: dict[str, Any] = {"type": "object", "properties": {}, "required": []}

    _TYPE_MAP = {
        "string": str,
        "integer": int,
        "number": (int, float),
        "boolean": bool,
        "array": list,
        "object": dict,
    }

    @abstractmethod
    async def execute(self, **kwargs: Any) -> ToolResult:
        """Run the tool with already-validated keyword arguments."""

    def validate_params(self, params: dict[str, Any]) -> list[str]:
        """Validate parameters against the JSON schema. Returns error list (empty if valid)."""
        schema = self.parameters or {}
        if schema.get("type", "object") != "object":
            raise ValueError(f"Schema must be object type, got {schema.get('type')!r}")
        return self._validate(params, {**schema, "type": "object"}, "")

    def _validate(self, val: Any, schema: dict[str, Any], path: str) -> list[str]:
        t, label = schema.get("type"), path or "parameter"
        expected = self._TYPE_MAP.get(t)
        # bool is an int subclass; don't let True pass as a number
        if expected and (not isinstance(val, expected) or (t in ("integer", "number") and isinstance(val, bool))):
            return [f"{label} should be {t}"]

        errors = []
        if "enum" in schema and val not in schema["enum"]:
            errors.append(f"{label} must be one of {schema['enum']}")
        if t in ("integer", "number"):
            if "minimum" in schema and val < schema["minimum"]:
                errors.append(f"{label} must be >= {schema['minimum']}")
            if "maximum" in schema and val > schema["maximum"]:
                errors.append(f"{label} must be <= {schema['maximum']}")
        if t == "string":
            if "minLength" in schema and len(val) < schema["minLength"]:
                errors.append(f"{label} must be at least {schema['minLength']} chars")
            if "maxLength" in schema and len(val) > schema["maxLength"]:
                errors.append(f"{label} must be at most {schema['maxLength']} chars")
        if t == "object":
            props = schema.get("properties", {})
            for k in schema.get("required", []):
                if k not in val:
                    errors.append(f"missing required {path + '.' + k if path else k}")
            for k, v in val.items():
                if k in props:
                    errors.extend(self._validate(v, props[k], path + "." + k if path else k))
        if t == "array" and "items" in schema:
            for i, item in enumerate(val):
                errors.extend(self._validate(item, schema["items"], f"{path}[{i}]" if path else f"[{i}]"))
        return errors

    def to_schema(self) -> dict[str, Any]:
        """Convert tool to the OpenAI function-calling schema."""
        params = self.parameters or {}
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": {
                    "type": "object",
                    "properties": dict(params.get("properties", {})),
                    "required": list(params.get("required", [])),
                },
            },
        }
