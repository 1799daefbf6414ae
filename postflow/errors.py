"""Error taxonomy shared by the workflow, the publish protocol and media admission."""


class PostflowError(Exception):
    """Base class for all service errors."""


# ----- Configuration -----
class ConfigurationError(PostflowError):
    """Missing or invalid configuration. Fatal, never retried."""


class TemplateNotFound(ConfigurationError):
    def __init__(self, template_key: str):
        self.template_key = template_key
        super().__init__(f"Template not found for key: {template_key}")


class ImagePromptNotConfigured(ConfigurationError):
    def __init__(self, template_key: str):
        self.template_key = template_key
        super().__init__(f"Image prompt not found for key: {template_key}")


class UnsupportedStorageProvider(ConfigurationError):
    def __init__(self, provider: str):
        self.provider = provider
        super().__init__(f"Invalid storage type {provider}")


# ----- Validation -----
class SchemaValidationError(PostflowError):
    """Model output could not be coerced to the requested schema."""

    def __init__(self, schema_name: str, detail: str):
        self.schema_name = schema_name
        self.detail = detail
        super().__init__(f"Model output does not match {schema_name}: {detail}")


class WorkflowError(PostflowError):
    """A workflow node could not complete."""


# ----- Publishing -----
class PublishError(PostflowError):
    """Base for failures that abort a publish batch."""


class ProviderError(PublishError):
    """Error payload returned by the provider API, already decoded."""

    def __init__(self, message: str, code: int | None = None, subcode: int | None = None, raw: dict | None = None):
        self.code = code
        self.subcode = subcode
        self.raw = raw or {}
        super().__init__(message)


class ProviderUnavailable(ProviderError):
    """Provider unreachable or reply unreadable. Transient while polling, fatal elsewhere."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class MediaProcessingFailed(PublishError):
    """Container reached the ERROR state."""


class MediaProcessingTimeout(PublishError):
    """Container never left IN_PROGRESS within the attempt ceiling."""


class VideoAdmissionError(PublishError):
    """Video URL rejected before any container was created."""


# ----- Media -----
class VideoProcessingError(PostflowError):
    """ffprobe/ffmpeg invocation failed."""
