"""
SQL-backed content sources for the feed.

Each provider opens its own short-lived session per call so the feed
composer can run them concurrently in worker threads. Raw rows are turned
into typed feed items here, at the boundary; rows that do not fit a known
content kind are skipped with a warning.
"""

import logging
from typing import Any, Callable, Dict, Iterable, List, Optional

from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm import Session

from app.core.exceptions import UpstreamError
from app.db.deps import session_scope
from app.db.models.collection import Collection, CollectionGame, CollectionPin
from app.db.models.enrichment import GameEnrichment
from app.db.models.enums import EnrichmentTypeEnum, PinContextEnum
from app.db.models.game import Game
from app.db.session import SessionLocal
from app.models.schemas import CollectionPinItem, EnrichmentItem, GameOut

logger = logging.getLogger(__name__)

PIN_PREVIEW_SIZE = 4


def ensure_https(url: Optional[str]) -> Optional[str]:
    if not url or not isinstance(url, str):
        return None
    if url.startswith("http://"):
        return "https://" + url[len("http://"):]
    return url


def _str(payload: Dict[str, Any], key: str) -> Optional[str]:
    value = payload.get(key)
    return value if isinstance(value, str) and value else None


# content type -> (feed kind, payload key holding the text, url required)
_ENRICHMENT_KINDS = {
    EnrichmentTypeEnum.VIDEO_URL: ("video", "description", True),
    EnrichmentTypeEnum.ARTICLE_URL: ("article", "snippet", False),
    EnrichmentTypeEnum.IMAGE_URL: ("image", "caption", True),
    EnrichmentTypeEnum.AUDIO_URL: ("audio", "description", True),
    EnrichmentTypeEnum.TEXT_SNIPPET: ("snippet", "text", False),
}
_CONSUMED_KEYS = {"url", "title", "description", "snippet", "caption", "text", "thumbnailUrl", "thumbnail_url"}


def enrichment_to_item(row: GameEnrichment, score: float = 0.0) -> Optional[EnrichmentItem]:
    try:
        content_type = EnrichmentTypeEnum(row.content_type)
    except ValueError:
        logger.warning("[Enrichment] Skipping %s: unknown content type %r", row.id, row.content_type)
        return None
    kind, text_key, url_required = _ENRICHMENT_KINDS[content_type]

    payload = row.content_json
    if isinstance(payload, str):
        # Some older rows store the bare URL instead of an object
        payload = {"url": payload} if payload.startswith("http") else {"text": payload}
    if not isinstance(payload, dict):
        payload = {}

    url = ensure_https(_str(payload, "url"))
    text = _str(payload, text_key)
    if url_required and not url:
        logger.warning("[Enrichment] Skipping %s: %s without a url", row.id, content_type.value)
        return None
    if content_type == EnrichmentTypeEnum.TEXT_SNIPPET and not text:
        logger.warning("[Enrichment] Skipping %s: empty snippet", row.id)
        return None

    return EnrichmentItem(
        score=score,
        provenance_game_id=row.appid,
        enrichment_id=row.id,
        content_type=kind,
        source_name=row.source_name,
        title=_str(payload, "title"),
        url=url,
        text=text,
        thumbnail_url=ensure_https(_str(payload, "thumbnailUrl") or _str(payload, "thumbnail_url")),
        extra={k: v for k, v in payload.items() if k not in _CONSUMED_KEYS},
        created_at=row.created_at,
    )


class _SqlProvider:
    def __init__(self, session_factory: Optional[Callable[[], Session]] = None):
        self.session_factory = session_factory or SessionLocal

    def _run(self, what: str, fn):
        try:
            with session_scope(self.session_factory) as db:
                return fn(db)
        except DBAPIError as e:
            logger.error("[%s] %s failed: %s", self.__class__.__name__, what, e)
            raise UpstreamError(f"{what} failed: {e.__class__.__name__}") from e


class SqlGameCatalog(_SqlProvider):
    def get_game(self, appid: int) -> Optional[GameOut]:
        def load(db):
            game = db.get(Game, appid)
            return GameOut.model_validate(game) if game else None
        return self._run("get_game", load)

    def get_games(self, appids: Iterable[int]) -> Dict[int, GameOut]:
        ids = list(appids)
        if not ids:
            return {}

        def load(db):
            rows = db.query(Game).filter(Game.appid.in_(ids)).all()
            return {row.appid: GameOut.model_validate(row) for row in rows}
        return self._run("get_games", load)

    def recent_games(self, limit: int) -> List[GameOut]:
        def load(db):
            rows = (
                db.query(Game)
                .order_by(Game.updated_at.desc().nullslast(), Game.appid)
                .limit(limit)
                .all()
            )
            return [GameOut.model_validate(row) for row in rows]
        return self._run("recent_games", load)


class SqlPinnedCollections(_SqlProvider):
    def pinned(self, context: PinContextEnum) -> List[CollectionPinItem]:
        def load(db):
            pins = (
                db.query(CollectionPin, Collection)
                .join(Collection, Collection.id == CollectionPin.collection_id)
                .filter(CollectionPin.context == context, Collection.published.is_(True))
                .order_by(CollectionPin.position, CollectionPin.id)
                .all()
            )
            items = []
            seen = set()
            for pin, collection in pins:
                if collection.id in seen:
                    continue
                seen.add(collection.id)
                preview = (
                    db.query(CollectionGame.appid)
                    .filter(CollectionGame.collection_id == collection.id)
                    .order_by(CollectionGame.position)
                    .limit(PIN_PREVIEW_SIZE)
                    .all()
                )
                items.append(CollectionPinItem(
                    collection_id=collection.id,
                    title=collection.title,
                    slug=collection.slug,
                    description=collection.description,
                    position=pin.position,
                    preview_game_ids=[appid for (appid,) in preview],
                ))
            return items
        return self._run("pinned", load)


class SqlEnrichments(_SqlProvider):
    def for_game(self, appid: int) -> List[EnrichmentItem]:
        def load(db):
            rows = (
                db.query(GameEnrichment)
                .filter(GameEnrichment.appid == appid)
                .order_by(GameEnrichment.created_at.desc(), GameEnrichment.id)
                .all()
            )
            items = (enrichment_to_item(row) for row in rows)
            return [item for item in items if item is not None]
        return self._run("for_game", load)
