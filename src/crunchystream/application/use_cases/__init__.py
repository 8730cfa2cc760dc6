from .media_lookup import fetch_media
from .playback import PlaybackUseCase

__all__ = ["PlaybackUseCase", "fetch_media"]
