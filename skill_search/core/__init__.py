from .exceptions import SkillSearchError, StorageError, QueryError, EncoderError, NetworkError
from .models import SkillRecord, SyncState, FetchedSkill

__all__ = [
    "SkillSearchError",
    "StorageError",
    "QueryError",
    "EncoderError",
    "NetworkError",
    "SkillRecord",
    "SyncState",
    "FetchedSkill",
]
