"""Request-level error kinds.

Every failure that can happen while serving an editor request is one of
these. They are caught at the request boundary (api/editor_routes.py) and
rendered as "Error: <context> - <detail>" so the process never goes down
because of a bad request or a flaky store.
"""

import html


class EditorError(Exception):
    """Base class: a failure reported to the caller with a context label."""

    status_code = 500
    default_context = "Request"

    def __init__(self, detail: object, context: str | None = None):
        self.detail = str(detail)
        self.context = context or self.default_context
        super().__init__(f"{self.context} - {self.detail}")

    def render_text(self) -> str:
        return f"Error: {self.context} - {self.detail}\n"

    def render_html_fragment(self) -> str:
        """Error block that also closes an already-started listing page."""
        return (
            f"<p><b>Error: {html.escape(self.context)} - {html.escape(self.detail)}</b></p>\n"
            "</center>\n</body>\n</html>\n"
        )


class AuthenticationFailure(EditorError):
    status_code = 401
    default_context = "Unauthorized"


class StoreUnavailable(EditorError):
    status_code = 503
    default_context = "Opening storage client"


class AttributeFetchFailure(EditorError):
    status_code = 502
    default_context = "Getting file attributes"


class ReadFailure(EditorError):
    status_code = 502
    default_context = "Reading file"


class WriteFailure(EditorError):
    status_code = 502
    default_context = "Writing file"


class LengthMismatch(EditorError):
    status_code = 500
    default_context = "File length"


class EmptySubmission(EditorError):
    status_code = 400
    default_context = "Got 0 size"


class FormParseFailure(EditorError):
    status_code = 400
    default_context = "Parsing form"


class RequestTimeout(EditorError):
    status_code = 504
    default_context = "Request deadline"
