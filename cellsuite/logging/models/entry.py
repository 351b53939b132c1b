from typing import Any

import msgspec

from .log_level import LogLevel


class Entry(msgspec.Struct, kw_only=True):
    """
    Base of every structured log entry. Each harness module subclasses it
    once per level, adding the context fields that identify its subject.
    """
    message: str | None = None
    level: LogLevel

    def fields(self) -> dict[str, Any]:
        values = msgspec.structs.asdict(self)
        values.pop("message")
        values.pop("level")

        return {
            field: value
            for field, value in values.items()
            if value is not None
        }

    def to_template(
        self,
        template: str,
        context: dict[str, Any] | None = None,
    ) -> str:
        values: dict[str, Any] = {
            "message": self.message or "",
            "level": self.level.value,
            **self.fields(),
        }

        if context:
            values.update(context)

        return template.format(**values)
