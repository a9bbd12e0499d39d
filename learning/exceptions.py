"""Domain errors raised by the services layer and their HTTP mapping."""
from __future__ import annotations

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler


class LearningError(Exception):
    """Base class for business-rule failures surfaced to API callers."""

    status_code = status.HTTP_400_BAD_REQUEST
    code = "BAD_REQUEST"
    default_detail = "Bad request."

    def __init__(self, detail: str | None = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class NotFound(LearningError):
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, entity: str, detail: str | None = None):
        self.entity = entity
        self.code = f"{entity.upper()}_NOT_FOUND"
        label = entity.replace("_", " ")
        super().__init__(detail or f"{label[:1].upper()}{label[1:]} not found.")


class InvalidAnswerFormat(LearningError):
    code = "INVALID_ANSWER"
    default_detail = "Invalid answer format."


class CannotAddYourself(LearningError):
    code = "CANNOT_ADD_YOURSELF"
    default_detail = "Cannot send friend request to yourself."


class AlreadyFriends(LearningError):
    code = "ALREADY_FRIENDS"
    default_detail = "Users are already friends."


class FriendRequestAlreadyExists(LearningError):
    code = "FRIEND_REQUEST_ALREADY_EXISTS"
    default_detail = "Friend request already exists."


class RequestAlreadyResponded(LearningError):
    code = "REQUEST_ALREADY_RESPONDED"
    default_detail = "Friend request has already been responded to."


class NotRequestParticipant(LearningError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "NOT_REQUEST_PARTICIPANT"
    default_detail = "You are not a participant of this friend request."


def api_exception_handler(exc, context):
    """DRF exception handler: map LearningError to {detail, code}; defer the rest."""
    if isinstance(exc, LearningError):
        return Response({"detail": exc.detail, "code": exc.code}, status=exc.status_code)
    return exception_handler(exc, context)
