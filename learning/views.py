# learning/views.py
from __future__ import annotations

from django.http import FileResponse
from rest_framework import status
from rest_framework.permissions import SAFE_METHODS, AllowAny, IsAdminUser, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from .exceptions import NotFound
from .models import AudioMedia
from .serializers import (
    AnswerResultSerializer,
    FriendRequestSerializer,
    FriendSerializer,
    LanguageSerializer,
    LevelProgressSerializer,
    LevelSerializer,
    ModuleSerializer,
    ModuleWithLevelsSerializer,
    QuestCreateSerializer,
    QuestSerializer,
    RespondFriendRequestSerializer,
    SaveProgressSerializer,
    SendFriendRequestSerializer,
    SetLanguageSerializer,
    SubmitAnswerSerializer,
    UserSearchSerializer,
    UserShortSerializer,
    UserStatsSerializer,
)
from .services import answers, catalog, friends, progress, quests


class AdminWriteMixin:
    """Reads use `read_permissions`; writes additionally require is_staff."""
    read_permissions = (IsAuthenticated,)

    def get_permissions(self):
        if self.request.method in SAFE_METHODS:
            return [p() for p in self.read_permissions]
        return [IsAuthenticated(), IsAdminUser()]


# Catalog

class LanguageListView(AdminWriteMixin, APIView):
    """GET /api/languages (anyone), POST /api/languages (admin)."""
    read_permissions = (AllowAny,)

    def get(self, request):
        return Response(LanguageSerializer(catalog.list_languages(), many=True).data)

    def post(self, request):
        ser = LanguageSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        language = catalog.create_language(ser.validated_data)
        return Response(LanguageSerializer(language).data, status=status.HTTP_201_CREATED)


class LanguageDetailView(AdminWriteMixin, APIView):
    read_permissions = (AllowAny,)

    def get(self, request, language_id: int):
        return Response(LanguageSerializer(catalog.get_language(language_id)).data)

    def put(self, request, language_id: int):
        ser = LanguageSerializer(data=request.data, partial=True)
        ser.is_valid(raise_exception=True)
        language = catalog.update_language(language_id, ser.validated_data)
        return Response(LanguageSerializer(language).data)

    def delete(self, request, language_id: int):
        catalog.delete_language(language_id)
        return Response(status=status.HTTP_204_NO_CONTENT)


class UserLanguageView(APIView):
    """GET/PUT /api/languages/user/current: the caller's selected language."""

    def get(self, request):
        language = catalog.get_user_language(request.user.id)
        if language is None:
            return Response(status=status.HTTP_204_NO_CONTENT)
        return Response(LanguageSerializer(language).data)

    def put(self, request):
        ser = SetLanguageSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        catalog.set_user_language(request.user.id, ser.validated_data["language_id"])
        return Response({"detail": "Language set."})


class LanguageModulesView(APIView):
    """GET /api/languages/{id}/modules: modules with levels and the caller's progress."""

    def get(self, request, language_id: int):
        modules = catalog.list_language_modules(language_id)
        out = []
        for module in modules:
            ctx = {"progress": progress.level_progress_map(request.user.id, module)}
            out.append(ModuleWithLevelsSerializer(module, context=ctx).data)
        return Response(out)


class ModuleCreateView(AdminWriteMixin, APIView):
    def post(self, request):
        ser = ModuleSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        module = catalog.create_module(ser.validated_data)
        return Response(ModuleSerializer(module).data, status=status.HTTP_201_CREATED)


class ModuleDetailView(AdminWriteMixin, APIView):
    def get(self, request, module_id: int):
        return Response(ModuleSerializer(catalog.get_module(module_id)).data)

    def put(self, request, module_id: int):
        ser = ModuleSerializer(data=request.data, partial=True)
        ser.is_valid(raise_exception=True)
        module = catalog.update_module(module_id, ser.validated_data)
        return Response(ModuleSerializer(module).data)

    def delete(self, request, module_id: int):
        catalog.delete_module(module_id)
        return Response(status=status.HTTP_204_NO_CONTENT)


class LevelCreateView(AdminWriteMixin, APIView):
    def post(self, request):
        ser = LevelSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        level = catalog.create_level(ser.validated_data)
        return Response(LevelSerializer(level).data, status=status.HTTP_201_CREATED)


class LevelDetailView(AdminWriteMixin, APIView):
    def get(self, request, level_id: int):
        return Response(LevelSerializer(catalog.get_level(level_id)).data)

    def put(self, request, level_id: int):
        ser = LevelSerializer(data=request.data, partial=True)
        ser.is_valid(raise_exception=True)
        level = catalog.update_level(level_id, ser.validated_data)
        return Response(LevelSerializer(level).data)

    def delete(self, request, level_id: int):
        catalog.delete_level(level_id)
        return Response(status=status.HTTP_204_NO_CONTENT)


# Quests

class LevelQuestsView(APIView):
    def get(self, request, level_id: int):
        return Response(QuestSerializer(quests.get_level_quests(level_id), many=True).data)


class QuestCreateView(AdminWriteMixin, APIView):
    """POST /api/quests (admin): author a match_words / dictation / translate quest."""

    def post(self, request):
        ser = QuestCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        quest = quests.create_quest(ser.validated_data)
        return Response(QuestSerializer(quest).data, status=status.HTTP_201_CREATED)


class QuestDetailView(AdminWriteMixin, APIView):
    def get(self, request, quest_id: int):
        return Response(QuestSerializer(quests.get_quest(quest_id)).data)

    def delete(self, request, quest_id: int):
        quests.delete_quest(quest_id)
        return Response(status=status.HTTP_204_NO_CONTENT)


class SubmitAnswerView(APIView):
    """POST /api/quests/submit: verdict only; progress is saved separately."""

    def post(self, request):
        ser = SubmitAnswerSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        result = answers.check_answer(ser.validated_data["quest_id"], ser.validated_data["answer"])
        return Response(AnswerResultSerializer(result).data)


# Progress

class SaveProgressView(APIView):
    def post(self, request):
        ser = SaveProgressSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        row = progress.save_progress(
            request.user.id,
            ser.validated_data["level_id"],
            ser.validated_data["correct"],
            quest_id=ser.validated_data.get("quest_id"),
        )
        return Response(LevelProgressSerializer(row).data)


class UserStatsView(APIView):
    def get(self, request):
        return Response(UserStatsSerializer(progress.get_user_stats(request.user.id)).data)


class LevelProgressView(APIView):
    """GET /api/levels/{id}/progress: 204 when the caller has not played the level."""

    def get(self, request, level_id: int):
        row = progress.get_level_progress(request.user.id, level_id)
        if row is None:
            return Response(status=status.HTTP_204_NO_CONTENT)
        return Response(LevelProgressSerializer(row).data)


# Friends

class FriendListView(APIView):
    def get(self, request):
        return Response(FriendSerializer(friends.get_friends(request.user.id), many=True).data)


class FriendDetailView(APIView):
    def delete(self, request, friend_id: int):
        friends.remove_friend(request.user.id, friend_id)
        return Response({"detail": "Friend removed."})


class UserSearchView(APIView):
    """GET /api/friends/search?query=...&limit=20"""

    def get(self, request):
        ser = UserSearchSerializer(data=request.query_params)
        ser.is_valid(raise_exception=True)
        users = friends.search_users(
            request.user.id, ser.validated_data["query"], ser.validated_data["limit"]
        )
        return Response(UserShortSerializer(users, many=True).data)


class FriendRequestCreateView(APIView):
    def post(self, request):
        ser = SendFriendRequestSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        fr = friends.send_friend_request(request.user.id, ser.validated_data["addressee_id"])
        return Response(FriendRequestSerializer(fr).data, status=status.HTTP_201_CREATED)


class IncomingRequestsView(APIView):
    def get(self, request):
        reqs = friends.get_incoming_requests(request.user.id)
        return Response(FriendRequestSerializer(reqs, many=True).data)


class OutgoingRequestsView(APIView):
    def get(self, request):
        reqs = friends.get_outgoing_requests(request.user.id)
        return Response(FriendRequestSerializer(reqs, many=True).data)


class RespondFriendRequestView(APIView):
    def post(self, request, request_id: int):
        ser = RespondFriendRequestSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        fr = friends.respond_to_friend_request(request_id, request.user.id, ser.validated_data["accept"])
        return Response(FriendRequestSerializer(fr).data)


class CancelFriendRequestView(APIView):
    def delete(self, request, request_id: int):
        friends.cancel_friend_request(request_id, request.user.id)
        return Response({"detail": "Friend request canceled."})


# Audio

class AudioView(APIView):
    """GET /api/audio/{id}: stream a stored quest / word recording."""
    permission_classes = (AllowAny,)

    def get(self, request, audio_id: int):
        media = AudioMedia.objects.filter(pk=audio_id).first()
        if media is None or not media.file or not media.file.storage.exists(media.file.name):
            raise NotFound("audio")
        return FileResponse(media.file.open("rb"), content_type=media.mime_type)
