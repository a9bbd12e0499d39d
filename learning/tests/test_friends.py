# learning/tests/test_friends.py
import pytest
from django.db import IntegrityError, transaction
from rest_framework.test import APIClient

from learning.exceptions import (
    AlreadyFriends,
    CannotAddYourself,
    FriendRequestAlreadyExists,
    NotFound,
    NotRequestParticipant,
    RequestAlreadyResponded,
)
from learning.models import FriendRequest, Friendship
from learning.services import friends

Status = FriendRequest.Status


def client_for(user):
    c = APIClient()
    c.force_authenticate(user=user)
    return c


@pytest.fixture
def alice(make_user):
    return make_user("alice")


@pytest.fixture
def bob(make_user):
    return make_user("bob")


@pytest.mark.django_db
def test_accept_creates_one_canonical_friendship(alice, bob):
    request = friends.send_friend_request(bob.id, alice.id)
    assert request.status == Status.PENDING
    assert friends.get_incoming_requests(alice.id) == [request]
    assert friends.get_outgoing_requests(bob.id) == [request]

    accepted = friends.respond_to_friend_request(request.id, alice.id, accept=True)
    assert accepted.status == Status.ACCEPTED
    assert accepted.responded_at is not None

    friendship = Friendship.objects.get()
    assert (friendship.user1_id, friendship.user2_id) == (alice.id, bob.id)
    assert friends.are_friends(alice.id, bob.id) and friends.are_friends(bob.id, alice.id)
    assert [f.user for f in friends.get_friends(alice.id)] == [bob]
    assert [f.user for f in friends.get_friends(bob.id)] == [alice]
    assert friends.get_incoming_requests(alice.id) == []


@pytest.mark.django_db
def test_reject_leaves_no_friendship(alice, bob):
    request = friends.send_friend_request(alice.id, bob.id)
    rejected = friends.respond_to_friend_request(request.id, bob.id, accept=False)
    assert rejected.status == Status.REJECTED
    assert not Friendship.objects.exists()

    # a fresh request is allowed once nothing is pending
    again = friends.send_friend_request(alice.id, bob.id)
    assert again.status == Status.PENDING


@pytest.mark.django_db
def test_request_can_only_be_answered_once(alice, bob):
    request = friends.send_friend_request(alice.id, bob.id)
    friends.respond_to_friend_request(request.id, bob.id, accept=True)

    with pytest.raises(RequestAlreadyResponded):
        friends.respond_to_friend_request(request.id, bob.id, accept=True)
    with pytest.raises(RequestAlreadyResponded):
        friends.respond_to_friend_request(request.id, bob.id, accept=False)
    assert Friendship.objects.count() == 1
    assert FriendRequest.objects.get(pk=request.id).status == Status.ACCEPTED


@pytest.mark.django_db
def test_only_addressee_responds_and_only_requester_cancels(alice, bob, make_user):
    carol = make_user("carol")
    request = friends.send_friend_request(alice.id, bob.id)

    with pytest.raises(NotRequestParticipant):
        friends.respond_to_friend_request(request.id, alice.id, accept=True)
    with pytest.raises(NotRequestParticipant):
        friends.respond_to_friend_request(request.id, carol.id, accept=True)
    with pytest.raises(NotRequestParticipant):
        friends.cancel_friend_request(request.id, bob.id)

    canceled = friends.cancel_friend_request(request.id, alice.id)
    assert canceled.status == Status.CANCELED
    assert canceled.responded_at is not None

    with pytest.raises(RequestAlreadyResponded):
        friends.cancel_friend_request(request.id, alice.id)
    with pytest.raises(RequestAlreadyResponded):
        friends.respond_to_friend_request(request.id, bob.id, accept=True)


@pytest.mark.django_db
def test_send_rules(alice, bob):
    with pytest.raises(CannotAddYourself):
        friends.send_friend_request(alice.id, alice.id)
    with pytest.raises(NotFound) as exc:
        friends.send_friend_request(alice.id, 999)
    assert exc.value.code == "USER_NOT_FOUND"

    friends.send_friend_request(alice.id, bob.id)
    with pytest.raises(FriendRequestAlreadyExists):
        friends.send_friend_request(alice.id, bob.id)
    # the reverse direction counts as the same pair
    with pytest.raises(FriendRequestAlreadyExists):
        friends.send_friend_request(bob.id, alice.id)


@pytest.mark.django_db
def test_cannot_request_existing_friend(alice, bob):
    request = friends.send_friend_request(alice.id, bob.id)
    friends.respond_to_friend_request(request.id, bob.id, accept=True)

    with pytest.raises(AlreadyFriends):
        friends.send_friend_request(bob.id, alice.id)


@pytest.mark.django_db
def test_database_rejects_second_pending_request_for_pair(alice, bob):
    FriendRequest.objects.create(requester=alice, addressee=bob)
    with pytest.raises(IntegrityError):
        with transaction.atomic():
            FriendRequest.objects.create(requester=bob, addressee=alice)

    # settled requests do not block a new pending one
    FriendRequest.objects.filter(requester=alice).update(status=Status.REJECTED)
    FriendRequest.objects.create(requester=bob, addressee=alice)


@pytest.mark.django_db
def test_insert_race_surfaces_as_already_exists(monkeypatch, alice, bob):
    # the other side's request lands between the checks and the insert
    FriendRequest.objects.create(requester=bob, addressee=alice)
    monkeypatch.setattr(friends, "has_pending_request", lambda a, b: False)

    with pytest.raises(FriendRequestAlreadyExists):
        friends.send_friend_request(alice.id, bob.id)
    assert FriendRequest.objects.count() == 1
    assert FriendRequest.objects.get().requester_id == bob.id


@pytest.mark.django_db
def test_remove_friend_either_side(alice, bob):
    request = friends.send_friend_request(alice.id, bob.id)
    friends.respond_to_friend_request(request.id, bob.id, accept=True)

    friends.remove_friend(bob.id, alice.id)
    assert not friends.are_friends(alice.id, bob.id)
    with pytest.raises(NotFound) as exc:
        friends.remove_friend(alice.id, bob.id)
    assert exc.value.code == "FRIENDSHIP_NOT_FOUND"


@pytest.mark.django_db
def test_search_is_case_insensitive_and_skips_self_and_friends(make_user, alice, bob):
    make_user("Alicia")
    make_user("malice")
    me = make_user("alina")
    request = friends.send_friend_request(me.id, alice.id)
    friends.respond_to_friend_request(request.id, alice.id, accept=True)

    found = [u.username for u in friends.search_users(me.id, "ALI")]
    assert found == ["Alicia", "malice"]
    assert [u.username for u in friends.search_users(me.id, "ali", limit=1)] == ["Alicia"]


@pytest.mark.django_db
def test_friend_request_flow_over_http(alice, bob):
    as_alice, as_bob = client_for(alice), client_for(bob)

    r = as_alice.post("/api/friends/requests", {"addressee_id": bob.id}, format="json")
    assert r.status_code == 201
    request_id = r.json()["id"]
    assert r.json()["status"] == "PENDING"
    assert r.json()["addressee"]["username"] == "bob"

    r = as_bob.post("/api/friends/requests", {"addressee_id": alice.id}, format="json")
    assert r.status_code == 400
    assert r.json()["code"] == "FRIEND_REQUEST_ALREADY_EXISTS"

    r = as_bob.get("/api/friends/requests/incoming")
    assert [fr["id"] for fr in r.json()] == [request_id]
    r = as_alice.get("/api/friends/requests/outgoing")
    assert [fr["id"] for fr in r.json()] == [request_id]

    r = as_alice.post(f"/api/friends/requests/{request_id}/respond", {"accept": True}, format="json")
    assert r.status_code == 403
    assert r.json()["code"] == "NOT_REQUEST_PARTICIPANT"

    r = as_bob.post(f"/api/friends/requests/{request_id}/respond", {"accept": True}, format="json")
    assert r.status_code == 200
    assert r.json()["status"] == "ACCEPTED"

    r = as_bob.post(f"/api/friends/requests/{request_id}/respond", {"accept": False}, format="json")
    assert r.status_code == 400
    assert r.json()["code"] == "REQUEST_ALREADY_RESPONDED"

    r = as_alice.get("/api/friends")
    assert r.status_code == 200
    assert [f["username"] for f in r.json()] == ["bob"]
    assert r.json()[0]["friends_since"].endswith("Z")

    r = as_alice.delete(f"/api/friends/{bob.id}")
    assert r.status_code == 200
    assert as_bob.get("/api/friends").json() == []


@pytest.mark.django_db
def test_http_errors_for_unknown_and_self(alice):
    as_alice = client_for(alice)

    r = as_alice.post("/api/friends/requests", {"addressee_id": alice.id}, format="json")
    assert r.status_code == 400
    assert r.json()["code"] == "CANNOT_ADD_YOURSELF"

    r = as_alice.post("/api/friends/requests/999/respond", {"accept": True}, format="json")
    assert r.status_code == 404
    assert r.json() == {"detail": "Friend request not found.", "code": "FRIEND_REQUEST_NOT_FOUND"}

    r = as_alice.delete("/api/friends/requests/999/cancel")
    assert r.status_code == 404


@pytest.mark.django_db
def test_search_endpoint(alice, bob):
    r = client_for(alice).get("/api/friends/search", {"query": "BO"})
    assert r.status_code == 200
    assert [u["username"] for u in r.json()] == ["bob"]

    r = client_for(alice).get("/api/friends/search")
    assert r.status_code == 400
