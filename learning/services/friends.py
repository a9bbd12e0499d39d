# learning/services/friends.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Tuple

from django.db import IntegrityError, transaction
from django.db.models import Q
from django.utils import timezone

from ..exceptions import (
    AlreadyFriends,
    CannotAddYourself,
    FriendRequestAlreadyExists,
    NotFound,
    NotRequestParticipant,
    RequestAlreadyResponded,
)
from ..models import FriendRequest, Friendship, User

logger = logging.getLogger(__name__)

Status = FriendRequest.Status


@dataclass(frozen=True)
class Friend:
    user: User
    friends_since: datetime


def canonical_pair(a: int, b: int) -> Tuple[int, int]:
    """Unordered pair with the smaller id first."""
    return (a, b) if a < b else (b, a)


def are_friends(a: int, b: int) -> bool:
    user1, user2 = canonical_pair(a, b)
    return Friendship.objects.filter(user1_id=user1, user2_id=user2).exists()


def has_pending_request(a: int, b: int) -> bool:
    """Whether a PENDING request exists between the pair, in either direction."""
    between = Q(requester_id=a, addressee_id=b) | Q(requester_id=b, addressee_id=a)
    return FriendRequest.objects.filter(between, status=Status.PENDING).exists()


def send_friend_request(requester_id: int, addressee_id: int) -> FriendRequest:
    if requester_id == addressee_id:
        raise CannotAddYourself()
    if not User.objects.filter(pk=addressee_id).exists():
        raise NotFound("user")
    if are_friends(requester_id, addressee_id):
        raise AlreadyFriends()

    if has_pending_request(requester_id, addressee_id):
        raise FriendRequestAlreadyExists()

    try:
        with transaction.atomic():
            request = FriendRequest.objects.create(
                requester_id=requester_id, addressee_id=addressee_id, status=Status.PENDING
            )
    except IntegrityError:
        # Race: the other side's request landed first (unique pending pair).
        raise FriendRequestAlreadyExists()

    logger.info("Friend request sent from user %s to user %s", requester_id, addressee_id)
    return request


def _get_request(request_id: int) -> FriendRequest:
    request = FriendRequest.objects.select_related("requester", "addressee").filter(pk=request_id).first()
    if request is None:
        raise NotFound("friend_request")
    return request


def respond_to_friend_request(request_id: int, user_id: int, accept: bool) -> FriendRequest:
    """
    Accept or reject a pending request addressed to ``user_id``.

    The status flip and, on accept, the friendship row are written in one
    transaction with the request row locked; the status is re-checked under
    the lock so two concurrent responses cannot both apply.
    """
    request = _get_request(request_id)
    if request.addressee_id != user_id:
        raise NotRequestParticipant()
    if request.status != Status.PENDING:
        raise RequestAlreadyResponded()

    with transaction.atomic():
        locked = FriendRequest.objects.select_for_update().get(pk=request.pk)
        if locked.status != Status.PENDING:
            raise RequestAlreadyResponded()

        request.status = Status.ACCEPTED if accept else Status.REJECTED
        request.responded_at = timezone.now()
        request.save(update_fields=["status", "responded_at"])

        if accept:
            user1, user2 = canonical_pair(request.requester_id, request.addressee_id)
            Friendship.objects.create(user1_id=user1, user2_id=user2)

    if accept:
        logger.info("Users %s and %s are now friends", request.requester_id, request.addressee_id)
    else:
        logger.info("Friend request %s rejected by user %s", request.pk, user_id)
    return request


def cancel_friend_request(request_id: int, user_id: int) -> FriendRequest:
    request = _get_request(request_id)
    if request.requester_id != user_id:
        raise NotRequestParticipant()

    with transaction.atomic():
        updated = FriendRequest.objects.filter(pk=request.pk, status=Status.PENDING).update(
            status=Status.CANCELED, responded_at=timezone.now()
        )
    if not updated:
        raise RequestAlreadyResponded()

    request.refresh_from_db()
    logger.info("Friend request %s canceled by user %s", request_id, user_id)
    return request


def get_incoming_requests(user_id: int) -> List[FriendRequest]:
    return list(
        FriendRequest.objects.filter(addressee_id=user_id, status=Status.PENDING)
        .select_related("requester", "addressee")
        .order_by("-created_at", "-id")
    )


def get_outgoing_requests(user_id: int) -> List[FriendRequest]:
    return list(
        FriendRequest.objects.filter(requester_id=user_id, status=Status.PENDING)
        .select_related("requester", "addressee")
        .order_by("-created_at", "-id")
    )


def _friendships_of(user_id: int):
    return Friendship.objects.filter(Q(user1_id=user_id) | Q(user2_id=user_id))


def friend_ids(user_id: int) -> List[int]:
    return [
        user2 if user1 == user_id else user1
        for user1, user2 in _friendships_of(user_id).values_list("user1_id", "user2_id")
    ]


def get_friends(user_id: int) -> List[Friend]:
    friendships = _friendships_of(user_id).select_related("user1", "user2").order_by("-created_at", "-id")
    return [
        Friend(user=f.user2 if f.user1_id == user_id else f.user1, friends_since=f.created_at)
        for f in friendships
    ]


def remove_friend(user_id: int, friend_id: int) -> None:
    user1, user2 = canonical_pair(user_id, friend_id)
    deleted, _ = Friendship.objects.filter(user1_id=user1, user2_id=user2).delete()
    if not deleted:
        raise NotFound("friendship")
    logger.info("Friendship removed between users %s and %s", user_id, friend_id)


def search_users(user_id: int, query: str, limit: int = 20) -> List[User]:
    """Case-insensitive username search, skipping the caller and their friends."""
    excluded = [user_id, *friend_ids(user_id)]
    return list(
        User.objects.filter(username__icontains=query)
        .exclude(pk__in=excluded)
        .order_by("username")[:limit]
    )
