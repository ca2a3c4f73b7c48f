"""
Voting app URLs - app status, vote, projects, winner, results
"""
from django.urls import path
from .views import (
    AppStatusView,
    CastVoteView,
    NavigateView,
    ProjectDetailView,
    ProjectListView,
    VotingResultsView,
    WinnerView,
)

app_name = 'voting'

urlpatterns = [
    # Screen resolution for the client (also consumes ?code=&email= / ?token=)
    path('app/status/', AppStatusView.as_view(), name='app_status'),
    path('app/navigate/', NavigateView.as_view(), name='app_navigate'),

    # Cast vote
    path('voting/vote/', CastVoteView.as_view(), name='cast_vote'),

    # Projects: GET list, POST create (admin)
    path('voting/projects/', ProjectListView.as_view(), name='projects'),
    path('voting/projects/<str:project_id>/', ProjectDetailView.as_view(), name='project_detail'),

    # Winner announcement and weighted results (admin)
    path('voting/winner/', WinnerView.as_view(), name='winner'),
    path('voting/results/', VotingResultsView.as_view(), name='voting_results'),
]
