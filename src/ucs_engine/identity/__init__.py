"""Identity - who is acting on a request."""

from .extractor import ANONYMOUS, ActorExtractor, extract_actor

__all__ = ["ANONYMOUS", "ActorExtractor", "extract_actor"]
