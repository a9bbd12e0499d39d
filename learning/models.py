from django.contrib.auth.models import AbstractUser
from django.db import models
from django.db.models import F, Q
from django.db.models.functions import Greatest, Least


class Language(models.Model):
    name = models.CharField(max_length=64)
    icon = models.CharField(max_length=255, null=True, blank=True)

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return self.name


class Module(models.Model):
    language = models.ForeignKey(Language, on_delete=models.CASCADE, related_name="modules")
    name = models.CharField(max_length=128)
    icon = models.CharField(max_length=255, null=True, blank=True)

    class Meta:
        ordering = ["id"]

    def __str__(self):
        return self.name


class Level(models.Model):
    module = models.ForeignKey(Module, on_delete=models.CASCADE, related_name="levels")
    name = models.CharField(max_length=128)
    quests_count = models.PositiveIntegerField(default=0)          # Quests needed to complete the level

    class Meta:
        ordering = ["id"]

    def __str__(self):
        return self.name


class User(AbstractUser):
    photo_url = models.URLField(max_length=500, null=True, blank=True)
    stars = models.PositiveIntegerField(default=0)                 # Cache: sum of score over all levels
    exp = models.PositiveIntegerField(default=0)                   # Cache: sum of score // 100 over all levels
    language = models.ForeignKey(
        Language, on_delete=models.SET_NULL, null=True, blank=True, related_name="learners"
    )


class AudioMedia(models.Model):
    file = models.FileField(upload_to="audio/")
    mime_type = models.CharField(max_length=64, default="audio/wav")
    file_size = models.PositiveIntegerField(default=0)
    duration = models.FloatField(null=True, blank=True)            # Seconds (optional)
    created_at = models.DateTimeField(auto_now_add=True)


class Word(models.Model):
    value = models.CharField(max_length=128, unique=True)          # Deduplicated lexical unit
    audio = models.ForeignKey(
        AudioMedia, on_delete=models.SET_NULL, null=True, blank=True, related_name="words"
    )

    def __str__(self):
        return self.value


class Sentence(models.Model):
    text = models.TextField()
    audio = models.ForeignKey(
        AudioMedia, on_delete=models.SET_NULL, null=True, blank=True, related_name="sentences"
    )
    words = models.ManyToManyField(Word, through="SentenceWord", related_name="sentences")

    def __str__(self):
        return self.text

    def ordered_words(self):
        # Uses a prefetched sentence_words cache when present; Meta ordering keeps positions.
        return [sw.word for sw in self.sentence_words.all()]


class SentenceWord(models.Model):
    sentence = models.ForeignKey(Sentence, on_delete=models.CASCADE, related_name="sentence_words")
    word = models.ForeignKey(Word, on_delete=models.PROTECT, related_name="sentence_links")
    position = models.PositiveIntegerField()                       # 0-based index within the sentence

    class Meta:
        ordering = ["position"]
        constraints = [
            models.UniqueConstraint(fields=["sentence", "position"], name="uq_sentence_position"),
        ]


class Distractor(models.Model):
    words = models.ManyToManyField(Word, related_name="distractors")


class Quest(models.Model):
    class Type(models.TextChoices):
        MATCH_WORDS = "match_words", "Match words"
        DICTATION = "dictation", "Dictation"
        TRANSLATE = "translate", "Translate"

    level = models.ForeignKey(Level, on_delete=models.CASCADE, related_name="quests")
    type = models.CharField(max_length=16, choices=Type.choices)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["id"]

    def save(self, *args, **kwargs):
        if self.pk is not None:
            stored = type(self).objects.filter(pk=self.pk).values_list("type", flat=True).first()
            if stored is not None and stored != self.type:
                raise ValueError("quest type cannot change after creation")
        super().save(*args, **kwargs)

    @property
    def payload(self):
        """The variant row matching ``type`` (exactly one exists per quest)."""
        # Variant related_names are the type values themselves.
        return getattr(self, self.Type(self.type).value)


class MatchWordsQuest(models.Model):
    quest = models.OneToOneField(
        Quest, on_delete=models.CASCADE, primary_key=True, related_name="match_words"
    )
    word = models.CharField(max_length=255)
    translate = models.CharField(max_length=255)                   # Answer key


class DictationQuest(models.Model):
    quest = models.OneToOneField(
        Quest, on_delete=models.CASCADE, primary_key=True, related_name="dictation"
    )
    audio = models.ForeignKey(AudioMedia, on_delete=models.PROTECT, related_name="dictations")
    correct_sentence = models.ForeignKey(Sentence, on_delete=models.PROTECT, related_name="dictations")
    distractor = models.ForeignKey(
        Distractor, on_delete=models.SET_NULL, null=True, blank=True, related_name="dictations"
    )


class TranslateQuest(models.Model):
    quest = models.OneToOneField(
        Quest, on_delete=models.CASCADE, primary_key=True, related_name="translate"
    )
    source_sentence = models.TextField()                           # Stored as-is, not tokenised
    correct_sentence = models.ForeignKey(Sentence, on_delete=models.PROTECT, related_name="translations")
    distractor = models.ForeignKey(
        Distractor, on_delete=models.SET_NULL, null=True, blank=True, related_name="translations"
    )


class UserLevelProgress(models.Model):
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name="level_progress")
    level = models.ForeignKey(Level, on_delete=models.CASCADE, related_name="user_progress")
    quests_attempted = models.PositiveIntegerField(default=0)
    score = models.PositiveIntegerField(default=0)                 # Correct answers, <= quests_attempted

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["user", "level"], name="uq_user_level"),
            models.CheckConstraint(
                condition=Q(score__lte=F("quests_attempted")), name="ck_score_lte_attempted"
            ),
        ]

    @property
    def stars(self) -> int:
        return self.score

    @property
    def exp(self) -> int:
        return self.score // 100


class FriendRequest(models.Model):
    class Status(models.TextChoices):
        PENDING = "PENDING"
        ACCEPTED = "ACCEPTED"
        REJECTED = "REJECTED"
        CANCELED = "CANCELED"

    requester = models.ForeignKey(User, on_delete=models.CASCADE, related_name="sent_friend_requests")
    addressee = models.ForeignKey(User, on_delete=models.CASCADE, related_name="received_friend_requests")
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.PENDING)
    created_at = models.DateTimeField(auto_now_add=True)
    responded_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        constraints = [
            models.CheckConstraint(
                condition=~Q(requester=F("addressee")), name="ck_request_not_self"
            ),
            # At most one PENDING request per unordered pair, whichever side sent it.
            models.UniqueConstraint(
                Least("requester", "addressee"),
                Greatest("requester", "addressee"),
                condition=Q(status="PENDING"),
                name="uq_pending_request_pair",
            ),
        ]
        indexes = [
            models.Index(fields=["addressee", "status"], name="idx_request_addressee"),
            models.Index(fields=["requester", "status"], name="idx_request_requester"),
        ]


class Friendship(models.Model):
    user1 = models.ForeignKey(User, on_delete=models.CASCADE, related_name="+")   # min(user ids)
    user2 = models.ForeignKey(User, on_delete=models.CASCADE, related_name="+")   # max(user ids)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["user1", "user2"], name="uq_friendship_pair"),
            models.CheckConstraint(condition=Q(user1__lt=F("user2")), name="ck_friendship_canonical"),
        ]
