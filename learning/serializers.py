# learning/serializers.py
import datetime as dt

from django.utils import timezone
from rest_framework import serializers

from .models import FriendRequest, Language, Level, Module, Quest, User, UserLevelProgress


class AwareDateTimeField(serializers.DateTimeField):
    """
    Datetime field that ensures tz-aware UTC datetimes.
    - Accepts ISO strings with/without timezone; if naive → assume UTC.
    - Always outputs ISO in UTC (Z).
    """
    def to_internal_value(self, value):
        d = super().to_internal_value(value)
        if d is None:
            return None
        if timezone.is_naive(d):
            d = timezone.make_aware(d, dt.timezone.utc)
        return d.astimezone(dt.timezone.utc)

    def to_representation(self, value):
        if value is None:
            return None
        if timezone.is_naive(value):
            value = timezone.make_aware(value, dt.timezone.utc)
        return super().to_representation(value.astimezone(dt.timezone.utc))


# Catalog

class LanguageSerializer(serializers.ModelSerializer):
    class Meta:
        model = Language
        fields = ("id", "name", "icon")
        read_only_fields = ("id",)
        extra_kwargs = {"icon": {"required": False, "allow_null": True}}


class SetLanguageSerializer(serializers.Serializer):
    language_id = serializers.IntegerField()


class ModuleSerializer(serializers.ModelSerializer):
    """Module snapshot; language_id is only writable on create."""
    language_id = serializers.IntegerField()

    class Meta:
        model = Module
        fields = ("id", "language_id", "name", "icon")
        read_only_fields = ("id",)
        extra_kwargs = {"icon": {"required": False, "allow_null": True}}


class LevelSerializer(serializers.ModelSerializer):
    module_id = serializers.IntegerField()

    class Meta:
        model = Level
        fields = ("id", "module_id", "name", "quests_count")
        read_only_fields = ("id",)


class LevelWithProgressSerializer(LevelSerializer):
    """Level plus the requesting user's progress (context["progress"]: level_id -> row)."""
    user_progress = serializers.SerializerMethodField()

    class Meta(LevelSerializer.Meta):
        fields = LevelSerializer.Meta.fields + ("user_progress",)

    def get_user_progress(self, obj):
        row = self.context.get("progress", {}).get(obj.id)
        if row is None:
            return None
        return {"quests_completed": row.quests_attempted, "score": row.score, "stars": row.stars}


class ModuleWithLevelsSerializer(ModuleSerializer):
    levels = serializers.SerializerMethodField()

    class Meta(ModuleSerializer.Meta):
        fields = ModuleSerializer.Meta.fields + ("levels",)

    def get_levels(self, obj):
        return LevelWithProgressSerializer(obj.levels.all(), many=True, context=self.context).data


# Quests

class QuestCreateSerializer(serializers.Serializer):
    """
    Input for quest authoring. Which fields are required depends on `type`:
      - match_words: word, translate
      - dictation:   text, language (+ optional distractor_words)
      - translate:   source_sentence, correct_sentence, target_language
                     (+ optional distractor_words)
    """
    REQUIRED_BY_TYPE = {
        Quest.Type.MATCH_WORDS: ("word", "translate"),
        Quest.Type.DICTATION: ("text", "language"),
        Quest.Type.TRANSLATE: ("source_sentence", "correct_sentence", "target_language"),
    }

    type = serializers.ChoiceField(choices=Quest.Type.choices)
    level_id = serializers.IntegerField()
    word = serializers.CharField(required=False, max_length=255)
    translate = serializers.CharField(required=False, max_length=255)
    text = serializers.CharField(required=False)
    language = serializers.CharField(required=False, max_length=32)
    source_sentence = serializers.CharField(required=False)
    correct_sentence = serializers.CharField(required=False)
    target_language = serializers.CharField(required=False, max_length=32)
    distractor_words = serializers.ListField(
        child=serializers.CharField(max_length=128), required=False, allow_empty=True
    )

    def validate(self, attrs):
        missing = [f for f in self.REQUIRED_BY_TYPE[Quest.Type(attrs["type"])] if not attrs.get(f)]
        if missing:
            raise serializers.ValidationError(
                {f: "This field is required for this quest type." for f in missing}
            )
        return attrs


class SentenceWordSerializer(serializers.Serializer):
    id = serializers.IntegerField(source="word.id")
    value = serializers.CharField(source="word.value")
    position = serializers.IntegerField()


def _sentence_data(sentence):
    return {
        "id": sentence.id,
        "text": sentence.text,
        "words": SentenceWordSerializer(sentence.sentence_words.all(), many=True).data,
    }


def _distractor_data(distractor):
    if distractor is None:
        return None
    return [{"id": w.id, "value": w.value} for w in distractor.words.all()]


class QuestSerializer(serializers.ModelSerializer):
    level_id = serializers.IntegerField(read_only=True)
    data = serializers.SerializerMethodField()

    class Meta:
        model = Quest
        fields = ("id", "type", "level_id", "data")

    def get_data(self, obj):
        payload = obj.payload
        if obj.type == Quest.Type.MATCH_WORDS:
            return {"word": payload.word, "translate": payload.translate}
        data = {
            "correct_sentence": _sentence_data(payload.correct_sentence),
            "distractor_words": _distractor_data(payload.distractor),
        }
        if obj.type == Quest.Type.DICTATION:
            data["audio_media_id"] = payload.audio_id
        else:
            data["source_sentence"] = payload.source_sentence
        return data


class SubmitAnswerSerializer(serializers.Serializer):
    quest_id = serializers.IntegerField()
    # Shape (string vs list of words) is checked against the quest type by the verifier.
    answer = serializers.JSONField()


class AnswerResultSerializer(serializers.Serializer):
    quest_id = serializers.IntegerField()
    correct = serializers.BooleanField()
    correct_answer = serializers.JSONField()


# Progress

class SaveProgressSerializer(serializers.Serializer):
    level_id = serializers.IntegerField()
    quest_id = serializers.IntegerField(required=False, allow_null=True)
    correct = serializers.BooleanField()


class LevelProgressSerializer(serializers.ModelSerializer):
    user_id = serializers.IntegerField(read_only=True)
    level_id = serializers.IntegerField(read_only=True)
    stars = serializers.IntegerField(read_only=True)
    exp = serializers.IntegerField(read_only=True)

    class Meta:
        model = UserLevelProgress
        fields = ("id", "user_id", "level_id", "quests_attempted", "score", "stars", "exp")
        read_only_fields = fields


class CurrentLevelSerializer(serializers.Serializer):
    level_id = serializers.IntegerField()
    level_name = serializers.CharField()
    progress = serializers.FloatField()
    quests_completed = serializers.IntegerField()
    total_quests = serializers.IntegerField()


class UserStatsSerializer(serializers.Serializer):
    total_stars = serializers.IntegerField()
    total_exp = serializers.IntegerField()
    completed_levels = serializers.IntegerField()
    current_level = CurrentLevelSerializer(allow_null=True)


# Friends

class UserShortSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ("id", "username", "first_name", "last_name", "photo_url", "stars", "exp")
        read_only_fields = fields


class FriendSerializer(serializers.Serializer):
    id = serializers.IntegerField(source="user.id")
    username = serializers.CharField(source="user.username")
    first_name = serializers.CharField(source="user.first_name")
    last_name = serializers.CharField(source="user.last_name")
    photo_url = serializers.CharField(source="user.photo_url", allow_null=True)
    stars = serializers.IntegerField(source="user.stars")
    exp = serializers.IntegerField(source="user.exp")
    friends_since = AwareDateTimeField()


class FriendRequestSerializer(serializers.ModelSerializer):
    requester_id = serializers.IntegerField(read_only=True)
    addressee_id = serializers.IntegerField(read_only=True)
    created_at = AwareDateTimeField(read_only=True)
    responded_at = AwareDateTimeField(read_only=True)
    requester = UserShortSerializer(read_only=True)
    addressee = UserShortSerializer(read_only=True)

    class Meta:
        model = FriendRequest
        fields = (
            "id",
            "requester_id",
            "addressee_id",
            "status",
            "created_at",
            "responded_at",
            "requester",
            "addressee",
        )
        read_only_fields = fields


class SendFriendRequestSerializer(serializers.Serializer):
    addressee_id = serializers.IntegerField()


class RespondFriendRequestSerializer(serializers.Serializer):
    accept = serializers.BooleanField()


class UserSearchSerializer(serializers.Serializer):
    query = serializers.CharField(max_length=150)
    limit = serializers.IntegerField(required=False, default=20, min_value=1, max_value=100)
