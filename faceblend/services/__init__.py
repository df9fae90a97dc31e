from faceblend.services.cache_store import DatabaseStore, JsonFileStore, KeyValueStore, create_cache_store
from faceblend.services.daily_puzzle_service import DailyPuzzleService
from faceblend.services.fused_image_service import FusedImageService
from faceblend.services.game_state_machine import GameStateMachine, GameStateStore, MAX_GUESSES, OptionStatus
from faceblend.services.identity_pool import IdentityPoolError, get_identity_pool, load_identity_pool
from faceblend.services.metadata_service import IdentityHints, MetadataEnricher, TMDBClient
from faceblend.services.puzzle_selector import PuzzleSelection, select_puzzle
from faceblend.services.seeded_random import create_seeded_random
