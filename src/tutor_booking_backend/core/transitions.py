'''
Status state machines for lesson requests and lessons, and who may drive them.
'''
from uuid import UUID

from ..common.exceptions import InvalidTransitionError, UnauthorizedRoleError
from ..database.db_enums import LessonRequestStatusEnum, LessonStatusEnum, UserRole

TUTOR = 'tutor'
STUDENT = 'student'

REQUEST_TRANSITIONS: dict[str, frozenset[str]] = {
    LessonRequestStatusEnum.PENDING.value: frozenset({
        LessonRequestStatusEnum.ACCEPTED.value,
        LessonRequestStatusEnum.REJECTED.value,
        LessonRequestStatusEnum.CANCELLED.value,
    }),
}

# Accepting a request books a confirmed lesson; pending lessons only come from
# rows written outside the request flow.
LESSON_TRANSITIONS: dict[str, frozenset[str]] = {
    LessonStatusEnum.PENDING.value: frozenset({
        LessonStatusEnum.CONFIRMED.value,
        LessonStatusEnum.CANCELLED.value,
    }),
    LessonStatusEnum.CONFIRMED.value: frozenset({
        LessonStatusEnum.COMPLETED.value,
        LessonStatusEnum.CANCELLED.value,
    }),
}

# Which participant of the record may move it into a given status.
REQUEST_ACTORS: dict[str, frozenset[str]] = {
    LessonRequestStatusEnum.ACCEPTED.value: frozenset({TUTOR}),
    LessonRequestStatusEnum.REJECTED.value: frozenset({TUTOR}),
    LessonRequestStatusEnum.CANCELLED.value: frozenset({STUDENT}),
}

LESSON_ACTORS: dict[str, frozenset[str]] = {
    LessonStatusEnum.CONFIRMED.value: frozenset({TUTOR}),
    LessonStatusEnum.COMPLETED.value: frozenset({TUTOR}),
    LessonStatusEnum.CANCELLED.value: frozenset({TUTOR, STUDENT}),
}


def is_terminal(transitions: dict[str, frozenset[str]], status: str) -> bool:
    return not transitions.get(status)


def ensure_transition(
    entity: str,
    transitions: dict[str, frozenset[str]],
    current: str,
    new: str
) -> None:
    """Raises InvalidTransitionError unless `new` is reachable from `current` in one step."""
    if is_terminal(transitions, current):
        raise InvalidTransitionError(f"The {entity} is already '{current}' and can no longer change.")
    if new not in transitions.get(current, frozenset()):
        raise InvalidTransitionError(f"Cannot move {entity} from '{current}' to '{new}'.")


def participant_of(user_id: UUID, user_role: str, tutor_id: UUID, student_id: UUID) -> str | None:
    """Returns which side of a booking the user is on, or None if they are not part of it."""
    if user_role == UserRole.TUTOR.value and user_id == tutor_id:
        return TUTOR
    if user_role == UserRole.STUDENT.value and user_id == student_id:
        return STUDENT
    return None


def ensure_actor(
    entity: str,
    actors: dict[str, frozenset[str]],
    new: str,
    user_id: UUID,
    user_role: str,
    tutor_id: UUID,
    student_id: UUID
) -> str:
    """
    Raises UnauthorizedRoleError unless the caller is the participant allowed to
    set `new`. Returns the caller's side ('tutor' or 'student').
    """
    side = participant_of(user_id, user_role, tutor_id, student_id)
    if side is None or side not in actors.get(new, frozenset()):
        raise UnauthorizedRoleError(f"You are not allowed to set this {entity} to '{new}'.")
    return side
