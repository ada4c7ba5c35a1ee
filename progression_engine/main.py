"""Main entry point: runs a short progression session against an in-memory store"""
import asyncio
import logging
import sys

from progression_engine.config import LOG_LEVEL, validate_config
from progression_engine.models.events import ProgressionEvent
from progression_engine.observability.sentry_config import init_sentry, set_user_context
from progression_engine.services.container import build_container

# Configure logging
logging.basicConfig(
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    level=getattr(logging, LOG_LEVEL)
)

logger = logging.getLogger(__name__)


def _log_event(event: ProgressionEvent) -> None:
    logger.info(f"[event] {event.type}: {event.model_dump(exclude={'type', 'user_id'})}")


async def main(user_id: str = "local") -> None:
    """Main application entry point"""
    logger.info("Validating configuration...")
    validate_config()
    init_sentry()

    container = build_container()
    store = container.identity_store
    service = container.progression_service

    await store.create_user(user_id)
    await store.sign_in(user_id)
    set_user_context(user_id)
    unsubscribe = service.subscribe_to_progress(_log_event)

    try:
        await service.record_lesson_completion("intro-to-shading", 1.0)
        await service.record_artwork_creation("first-sketch")
        await service.record_artwork_shared("first-sketch")
        await service.record_challenge_participation("weekly-portrait", won=True)

        summary = await service.get_achievement_progress()
        progress = await service.get_user_progress()
        logger.info(
            f"User {user_id}: level {progress['level']}, {progress['xp']} XP, "
            f"{summary.unlocked}/{summary.total} achievements unlocked"
        )
        logger.info(f"Daily XP goal: {await service.calculate_daily_xp_goal()}")
    finally:
        unsubscribe()
        await store.sign_out()


def run() -> None:
    asyncio.run(main(*sys.argv[1:2]))


if __name__ == "__main__":
    run()
