'''
Static Python mirrors of the database ENUM types.
'''
import enum


class ListableEnum(str, enum.Enum):
    """A custom Enum base class that can list all member values."""
    @classmethod
    def get_all_names(cls) -> list[str]:
        return [member.value for member in cls]


class UserRole(ListableEnum):
    ADMIN = 'admin'
    TUTOR = 'tutor'
    STUDENT = 'student'


class LessonStatusEnum(ListableEnum):
    PENDING = 'pending'
    CONFIRMED = 'confirmed'
    COMPLETED = 'completed'
    CANCELLED = 'cancelled'


class LessonRequestStatusEnum(ListableEnum):
    PENDING = 'pending'
    ACCEPTED = 'accepted'
    REJECTED = 'rejected'
    CANCELLED = 'cancelled'


class RelationshipStatusEnum(ListableEnum):
    PENDING = 'pending'
    ACCEPTED = 'accepted'
