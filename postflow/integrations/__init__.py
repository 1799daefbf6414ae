"""Social provider integrations."""
from postflow.integrations.instagram_provider import InstagramProvider, decode_provider_error

__all__ = ["InstagramProvider", "decode_provider_error"]
