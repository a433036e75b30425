"""Failure kinds surfaced by the roundup pipeline.

Every error carries a stable ``kind`` string and a ``details()`` dict so the
web layer and the CLI can report it without inspecting the class hierarchy.
None of these are retried anywhere in the package.
"""


class RoundupError(Exception):
    kind = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def details(self) -> dict:
        return {}

    def to_dict(self) -> dict:
        return {"error": self.message, "kind": self.kind, **self.details()}


class InvalidInput(RoundupError):
    """Caller-supplied data failed a precondition."""

    kind = "invalid_input"


class NotConfigured(RoundupError):
    """A collaborator (model API, mail provider) has no credentials."""

    kind = "not_configured"


class UpstreamFailure(RoundupError):
    """The completion collaborator failed at the transport level."""

    kind = "upstream_failure"


# --- Extraction -----------------------------------------------------------

class ExtractionError(RoundupError):
    kind = "extraction_error"


class NoArrayFound(ExtractionError):
    kind = "no_array_found"


class InvalidJson(ExtractionError):
    kind = "invalid_json"

    def __init__(self, message: str, position: int | None = None):
        super().__init__(message)
        self.position = position

    def details(self) -> dict:
        return {"position": self.position}


class SchemaViolation(ExtractionError):
    kind = "schema_violation"

    def __init__(self, message: str, index: int | None = None, field: str | None = None):
        super().__init__(message)
        self.index = index
        self.field = field

    def details(self) -> dict:
        return {"index": self.index, "field": self.field}


class MalformedResponse(RoundupError):
    """The model answered, but no valid item list could be recovered."""

    kind = "malformed_response"

    def __init__(self, message: str, raw: str, reason: ExtractionError):
        super().__init__(message)
        self.raw = raw
        self.reason = reason

    def details(self) -> dict:
        return {
            "reason": self.reason.kind,
            **self.reason.details(),
            "raw": self.raw,
        }


# --- Rendering ------------------------------------------------------------

class RenderError(RoundupError):
    kind = "render_error"


class NoItemsSelected(InvalidInput, RenderError):
    kind = "no_items_selected"


class TemplateUnavailable(RenderError):
    kind = "template_unavailable"


class TemplateMalformed(RenderError):
    kind = "template_malformed"


# --- Recipients and mail --------------------------------------------------

class ResolutionError(RoundupError):
    kind = "resolution_error"


class UnknownGroup(InvalidInput, ResolutionError):
    kind = "unknown_group"

    def __init__(self, group_name: str):
        super().__init__(f"Unknown recipient group: {group_name!r}")
        self.group_name = group_name

    def details(self) -> dict:
        return {"group": self.group_name}


class MailFailure(RoundupError):
    kind = "mail_failure"
