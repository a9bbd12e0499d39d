from django.urls import path

from . import views

urlpatterns = [
    path("languages", views.LanguageListView.as_view(), name="language-list"),
    path("languages/user/current", views.UserLanguageView.as_view(), name="user-language"),
    path("languages/<int:language_id>", views.LanguageDetailView.as_view(), name="language-detail"),
    path("languages/<int:language_id>/modules", views.LanguageModulesView.as_view(), name="language-modules"),
    path("modules", views.ModuleCreateView.as_view(), name="module-create"),
    path("modules/<int:module_id>", views.ModuleDetailView.as_view(), name="module-detail"),
    path("levels", views.LevelCreateView.as_view(), name="level-create"),
    path("levels/<int:level_id>", views.LevelDetailView.as_view(), name="level-detail"),
    path("levels/<int:level_id>/quests", views.LevelQuestsView.as_view(), name="level-quests"),
    path("levels/<int:level_id>/progress", views.LevelProgressView.as_view(), name="level-progress"),
    path("quests", views.QuestCreateView.as_view(), name="quest-create"),
    path("quests/submit", views.SubmitAnswerView.as_view(), name="quest-submit"),
    path("quests/<int:quest_id>", views.QuestDetailView.as_view(), name="quest-detail"),
    path("progress/save", views.SaveProgressView.as_view(), name="progress-save"),
    path("progress/stats", views.UserStatsView.as_view(), name="progress-stats"),
    path("friends", views.FriendListView.as_view(), name="friend-list"),
    path("friends/search", views.UserSearchView.as_view(), name="friend-search"),
    path("friends/requests", views.FriendRequestCreateView.as_view(), name="friend-request-create"),
    path("friends/requests/incoming", views.IncomingRequestsView.as_view(), name="friend-requests-incoming"),
    path("friends/requests/outgoing", views.OutgoingRequestsView.as_view(), name="friend-requests-outgoing"),
    path(
        "friends/requests/<int:request_id>/respond",
        views.RespondFriendRequestView.as_view(),
        name="friend-request-respond",
    ),
    path(
        "friends/requests/<int:request_id>/cancel",
        views.CancelFriendRequestView.as_view(),
        name="friend-request-cancel",
    ),
    path("friends/<int:friend_id>", views.FriendDetailView.as_view(), name="friend-detail"),
    path("audio/<int:audio_id>", views.AudioView.as_view(), name="audio"),
]
