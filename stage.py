"""
Funnel stage derivation.

1 = building profile, 2 = discovering, 3 = finalizing (1-2 locks),
4 = preparing applications (3+ locks). Stage only changes through these
transitions, each applied right after the matching selection mutation.
"""

from models import StageEnum

MIN_STAGE = StageEnum.BUILDING_PROFILE.value
MAX_STAGE = StageEnum.PREPARING_APPLICATIONS.value

# Locks needed to reach the application stage
APPLICATION_LOCK_THRESHOLD = 3

STAGE_LABELS = {
    StageEnum.BUILDING_PROFILE.value: "Building Profile",
    StageEnum.DISCOVERING.value: "Discovering Universities",
    StageEnum.FINALIZING.value: "Finalizing Universities",
    StageEnum.PREPARING_APPLICATIONS.value: "Preparing Applications",
}


def clamp_stage(stage) -> int:
    if stage is None:
        return MIN_STAGE
    return max(MIN_STAGE, min(MAX_STAGE, int(stage)))


def stage_label(stage: int) -> str:
    return STAGE_LABELS[clamp_stage(stage)]


def stage_after_onboarding(current_stage: int) -> int:
    """Completing onboarding moves the student into discovery."""
    return max(clamp_stage(current_stage), StageEnum.DISCOVERING.value)


def stage_after_shortlist(current_stage: int) -> int:
    return max(clamp_stage(current_stage), StageEnum.DISCOVERING.value)


def stage_after_unshortlist(current_stage: int, shortlisted_count: int, locked_count: int) -> int:
    """Falls back to profile building only when nothing is shortlisted or locked."""
    if shortlisted_count == 0 and locked_count == 0:
        return StageEnum.BUILDING_PROFILE.value
    return clamp_stage(current_stage)


def stage_after_lock(current_stage: int, locked_count: int) -> int:
    stage = max(clamp_stage(current_stage), StageEnum.FINALIZING.value)
    if locked_count >= APPLICATION_LOCK_THRESHOLD:
        stage = StageEnum.PREPARING_APPLICATIONS.value
    return stage


def stage_after_unlock(current_stage: int, shortlisted_count: int, locked_count: int) -> int:
    if locked_count == 0:
        if shortlisted_count > 0:
            return StageEnum.DISCOVERING.value
        return StageEnum.BUILDING_PROFILE.value
    if locked_count < APPLICATION_LOCK_THRESHOLD:
        return StageEnum.FINALIZING.value
    return clamp_stage(current_stage)
