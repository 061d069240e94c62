from .game import Game
from .vibe_embedding import VibeEmbedding
from .collection import Collection, CollectionGame, CollectionPin
from .enrichment import GameEnrichment
from .submission import GameSubmission
from .enums import SourceTypeEnum, EnrichmentTypeEnum, PinContextEnum, SubmissionStatusEnum
