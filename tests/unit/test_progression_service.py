"""Unit tests for ProgressionService"""
import pytest
from datetime import date, timedelta
from unittest.mock import AsyncMock, patch

from progression_engine.exceptions import (
    InvalidDeltaError,
    PersistenceError,
    PreconditionError,
    ValidationError,
)
from progression_engine.gamification.catalog import CHALLENGE_WON
from progression_engine.models.achievement import AchievementCategory, AchievementState
from progression_engine.services.progression_service import ProgressionService


# ============================================================================
# Preconditions
# ============================================================================

@pytest.mark.asyncio
async def test_actions_require_current_user(service):
    with pytest.raises(PreconditionError):
        await service.record_lesson_completion("lesson-1", 0.8)
    with pytest.raises(PreconditionError):
        await service.record_artwork_creation("art-1")
    with pytest.raises(PreconditionError):
        await service.check_achievements(AchievementCategory.SKILL)


@pytest.mark.asyncio
@pytest.mark.parametrize("score", [-0.1, 1.01, "0.9", None])
async def test_invalid_score_rejected(service, identity_store, user_id, score):
    with pytest.raises(ValidationError):
        await service.record_lesson_completion("lesson-1", score)

    record = await identity_store.get_user(user_id)
    assert record.stats == {}


# ============================================================================
# Actions
# ============================================================================

@pytest.mark.asyncio
async def test_first_lesson_completion(service, identity_store, user_id, start_time):
    result = await service.record_lesson_completion("lesson-1", 0.8)

    assert [d.id for d in result['unlocked']] == ["first_lesson"]
    assert result['perfect'] is False
    assert result['streak'].current_streak == 1
    assert result['errors'] == []

    record = await identity_store.get_user(user_id)
    assert record.xp == 50
    assert record.stats == {"totalLessonsCompleted": 1}
    assert record.achievements["lesson_master_100"].progress == 1
    assert record.last_activity_date == start_time.date()


@pytest.mark.asyncio
async def test_perfect_lesson(service, identity_store, user_id):
    result = await service.record_lesson_completion("lesson-1", 0.95)

    assert result['perfect'] is True
    assert {d.id for d in result['unlocked']} == {"first_lesson", "perfect_lesson"}
    record = await identity_store.get_user(user_id)
    assert record.stats["perfectLessons"] == 1
    assert record.xp == 150


@pytest.mark.asyncio
async def test_lessons_on_consecutive_days_extend_streak(service, identity_store, user_id, clock):
    await service.record_lesson_completion("lesson-1", 0.5)
    clock.advance(days=1)
    result = await service.record_lesson_completion("lesson-2", 0.5)

    assert result['streak'].current_streak == 2
    record = await identity_store.get_user(user_id)
    assert record.achievements["streak_7"].progress == 2


@pytest.mark.asyncio
async def test_streak_day_follows_today_provider(identity_store, user_id, notifier, clock):
    service = ProgressionService(
        identity_store,
        notifier=notifier,
        clock=clock,
        today=lambda: date(2026, 3, 11),
    )

    await service.record_lesson_completion("lesson-1", 0.5)

    record = await identity_store.get_user(user_id)
    assert record.last_activity_date == date(2026, 3, 11)


@pytest.mark.asyncio
async def test_streak_day_uses_activity_timezone(service, identity_store, user_id, clock, start_time):
    """Two lessons on one UTC day fall on consecutive days in Tokyo"""
    clock.now = start_time.replace(hour=14)  # 23:00 in Tokyo
    with patch("progression_engine.services.progression_service.ACTIVITY_TIMEZONE", "Asia/Tokyo"):
        await service.record_lesson_completion("lesson-1", 0.5)
        clock.advance(hours=2)  # 01:00 next day in Tokyo
        result = await service.record_lesson_completion("lesson-2", 0.5)

    assert result['streak'].current_streak == 2
    record = await identity_store.get_user(user_id)
    assert record.last_activity_date == date(2026, 3, 11)


@pytest.mark.asyncio
async def test_artwork_creation(service, identity_store, user_id):
    result = await service.record_artwork_creation("art-1")

    assert [d.id for d in result['unlocked']] == ["first_artwork"]
    record = await identity_store.get_user(user_id)
    assert record.stats == {"artworksCreated": 1}
    assert record.achievements["artwork_10"].progress == 1


@pytest.mark.asyncio
async def test_artwork_shared(service, identity_store, user_id):
    result = await service.record_artwork_shared("art-1")

    assert [d.id for d in result['unlocked']] == ["artwork_shared"]
    record = await identity_store.get_user(user_id)
    assert "challenge_participant" not in record.achievements


@pytest.mark.asyncio
async def test_challenge_won(service, identity_store, user_id):
    result = await service.record_challenge_participation("challenge-1", won=True)

    assert [d.id for d in result['unlocked']] == ["challenge_participant", "challenge_winner"]
    record = await identity_store.get_user(user_id)
    assert record.stats == {"challengesCompleted": 1, "challengesWon": 1}
    assert record.xp == 350


@pytest.mark.asyncio
async def test_challenge_lost(service, identity_store, user_id):
    result = await service.record_challenge_participation("challenge-1", won=False)

    assert [d.id for d in result['unlocked']] == ["challenge_participant"]
    record = await identity_store.get_user(user_id)
    assert "challengesWon" not in record.stats


@pytest.mark.asyncio
async def test_skill_tree_completion(service, identity_store, user_id):
    result = await service.record_skill_tree_completion("tree-basics")

    assert [d.id for d in result['unlocked']] == ["skill_tree_complete"]
    record = await identity_store.get_user(user_id)
    assert record.stats == {"skillTreesCompleted": 1}
    assert record.xp == 500


@pytest.mark.asyncio
async def test_stat_failure_does_not_block_achievements(service, identity_store, user_id):
    """A failed counter increment is reported and the action continues"""
    failing = AsyncMock(side_effect=PersistenceError("counter write failed"))

    with patch.object(identity_store, "increment_stat", failing):
        with patch("progression_engine.services.progression_service.report_error") as report:
            result = await service.record_artwork_creation("art-1")

    assert [d.id for d in result['unlocked']] == ["first_artwork"]
    assert len(result['errors']) == 1
    assert result['errors'][0]['severity'] == "low"
    report.assert_called_once()


@pytest.mark.asyncio
async def test_check_achievements_propagates_errors(service, user_id):
    with pytest.raises(InvalidDeltaError):
        await service.check_achievements(AchievementCategory.SKILL, 0)

    unlocked = await service.check_achievements(AchievementCategory.CREATIVITY, 1)
    assert [d.id for d in unlocked] == ["first_artwork"]


@pytest.mark.asyncio
async def test_check_achievements_streak_is_not_additive(service, identity_store, user_id):
    """Repeated 1-day streak checks never add up to a 7-day streak"""
    for _ in range(7):
        unlocked = await service.check_achievements(AchievementCategory.STREAK, 1)
        assert unlocked == []

    record = await identity_store.get_user(user_id)
    assert record.achievements["streak_7"].progress == 1
    assert not record.achievements["streak_7"].unlocked
    assert record.xp == 0


@pytest.mark.asyncio
async def test_check_achievements_streak_uses_current_length(service, identity_store, user_id):
    await service.check_achievements(AchievementCategory.STREAK, 5)
    unlocked = await service.check_achievements(AchievementCategory.STREAK, 7)

    assert [d.id for d in unlocked] == ["streak_7"]
    record = await identity_store.get_user(user_id)
    assert record.achievements["streak_30"].progress == 7
    assert record.xp == 100


@pytest.mark.asyncio
async def test_check_achievements_covers_every_criterion(service, user_id):
    unlocked = await service.check_achievements(AchievementCategory.SOCIAL, 1)

    assert [d.id for d in unlocked] == ["artwork_shared", "challenge_participant", "challenge_winner"]


@pytest.mark.asyncio
async def test_check_achievements_with_criterion(service, identity_store, user_id):
    unlocked = await service.check_achievements(AchievementCategory.SOCIAL, 1, criterion=CHALLENGE_WON)

    assert [d.id for d in unlocked] == ["challenge_winner"]
    record = await identity_store.get_user(user_id)
    assert set(record.achievements) == {"challenge_winner"}


@pytest.mark.asyncio
async def test_check_achievements_milestones(service, identity_store, user_id):
    """Milestones carry criteria but still advance through check_achievements"""
    unlocked = await service.check_achievements(AchievementCategory.MILESTONE, 1)

    assert [d.id for d in unlocked] == ["skill_tree_complete"]
    record = await identity_store.get_user(user_id)
    assert record.achievements["lesson_master_100"].progress == 1


# ============================================================================
# Partial failures
# ============================================================================

def _fail_update_on_call(identity_store, failing_call):
    """update_user that rejects the ``failing_call``-th write (1-based)"""
    real_update = identity_store.update_user
    calls = []

    async def update_user(record):
        calls.append(record.user_id)
        if len(calls) == failing_call:
            raise PersistenceError("update_user failed")
        return await real_update(record)

    return update_user


@pytest.mark.asyncio
async def test_committed_unlocks_survive_later_failure(service, identity_store, user_id):
    """An unlock saved before a failed unlock is still returned"""
    await service.ledger.set_achievement_state(user_id, AchievementState(id="artwork_10", progress=9))

    with patch.object(identity_store, "update_user", _fail_update_on_call(identity_store, 2)):
        with patch("progression_engine.services.progression_service.report_error") as report:
            result = await service.record_artwork_creation("art-10")

    assert [d.id for d in result['unlocked']] == ["first_artwork"]
    assert len(result['errors']) == 1
    assert result['errors'][0]['severity'] == "medium"
    report.assert_called_once()

    record = await identity_store.get_user(user_id)
    assert record.achievements["first_artwork"].unlocked
    assert not record.achievements["artwork_10"].unlocked
    assert record.xp == 50


@pytest.mark.asyncio
async def test_check_achievements_failure_lists_committed(service, identity_store, user_id):
    with patch.object(identity_store, "update_user", _fail_update_on_call(identity_store, 2)):
        with pytest.raises(PersistenceError) as exc_info:
            await service.check_achievements(AchievementCategory.CREATIVITY, 10)

    assert [d.id for d in exc_info.value.committed] == ["first_artwork"]


# ============================================================================
# Queries
# ============================================================================

@pytest.mark.asyncio
async def test_summary_without_user(service):
    summary = await service.get_achievement_progress()

    assert summary.total == 14
    assert summary.unlocked == 0
    assert summary.in_progress == []
    assert len(summary.locked) == 14


@pytest.mark.asyncio
async def test_summary_for_fresh_user(service, user_id):
    summary = await service.get_achievement_progress()

    assert (summary.total, summary.unlocked, len(summary.in_progress), len(summary.locked)) == (14, 0, 0, 14)


@pytest.mark.asyncio
async def test_summary_after_first_lesson(service, user_id):
    await service.record_lesson_completion("lesson-1", 0.5)
    summary = await service.get_achievement_progress()

    in_progress = {view.definition.id: view.progress for view in summary.in_progress}
    assert summary.unlocked == 1
    assert in_progress == {
        "lesson_master_10": 1,
        "lesson_master_50": 1,
        "lesson_master_100": 1,
        "streak_7": 1,
        "streak_30": 1,
        "streak_100": 1,
    }
    assert summary.unlocked + len(summary.in_progress) + len(summary.locked) == summary.total


@pytest.mark.asyncio
async def test_daily_goal_without_user(service):
    assert await service.calculate_daily_xp_goal() == 50


@pytest.mark.asyncio
async def test_daily_goal_new_user_minimum(service, user_id):
    assert await service.calculate_daily_xp_goal() == 50


@pytest.mark.asyncio
async def test_daily_goal_scales_with_average(service, identity_store, user_id, clock):
    record = await identity_store.get_user(user_id)
    record.xp = 2000
    await identity_store.update_user(record)
    clock.advance(days=10)

    # 2000 XP over 10 days -> 200/day * 1.2
    assert await service.calculate_daily_xp_goal() == 240


@pytest.mark.asyncio
async def test_daily_goal_capped(service, identity_store, user_id, clock):
    record = await identity_store.get_user(user_id)
    record.xp = 9000
    await identity_store.update_user(record)
    clock.advance(days=2)

    assert await service.calculate_daily_xp_goal() == 500


@pytest.mark.asyncio
async def test_get_user_progress(service, user_id):
    assert (await service.get_user_progress())['level'] == 1

    await service.record_skill_tree_completion("tree-basics")
    progress = await service.get_user_progress()

    assert progress['xp'] == 500
    assert progress['xp_to_next_level'] == 500
    assert progress['achievements_unlocked'] == 1


@pytest.mark.asyncio
async def test_get_user_progress_without_user(service):
    assert await service.get_user_progress() is None


@pytest.mark.asyncio
async def test_get_achievement(service, user_id):
    assert await service.get_achievement("first_artwork") is None

    await service.record_artwork_creation("art-1")
    state = await service.get_achievement("first_artwork")

    assert state.unlocked
    assert service.get_achievement_definition("first_artwork").xp_reward == 50
    assert service.get_achievement_definition("missing") is None


@pytest.mark.asyncio
async def test_subscribe_to_progress(service, user_id):
    received = []
    unsubscribe = service.subscribe_to_progress(received.append)

    await service.record_artwork_creation("art-1")
    count = len(received)
    unsubscribe()
    await service.record_artwork_creation("art-2")

    assert count > 0
    assert len(received) == count


@pytest.mark.asyncio
async def test_actions_follow_signed_in_user(service, identity_store, user_id, start_time):
    await identity_store.create_user("other", created_at=start_time - timedelta(days=1))
    await identity_store.sign_in("other")

    await service.record_artwork_creation("art-1")

    assert (await identity_store.get_user("other")).stats == {"artworksCreated": 1}
    assert (await identity_store.get_user(user_id)).stats == {}
