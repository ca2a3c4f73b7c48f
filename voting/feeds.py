"""
Live change feeds for the projects list and the winner announcement.

Saves and deletes of Project/Winner rows publish a fresh snapshot to every
subscriber (wired to Django's post_save/post_delete in VotingConfig.ready).
LiveState is the local view kept current by those pushes; the winner is
last-write-wins.
"""

import logging
import threading

from authentication.clock import to_iso

from .models import Project, Winner

logger = logging.getLogger(__name__)


class ChangeFeed:
    """Minimal publish/subscribe channel."""

    def __init__(self, name):
        self.name = name
        self._subscribers = []
        self._lock = threading.Lock()

    def subscribe(self, callback):
        """Register `callback(snapshot)`; returns an unsubscribe function."""
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe():
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    @property
    def subscriber_count(self):
        return len(self._subscribers)

    def publish(self, snapshot):
        with self._lock:
            subscribers = list(self._subscribers)
        for callback in subscribers:
            try:
                callback(snapshot)
            except Exception as e:
                logger.error(f"{self.name} feed subscriber failed: {e}", exc_info=True)


projects_feed = ChangeFeed('projects')
winner_feed = ChangeFeed('winner')


def serialize_project(project):
    return {'id': project.id, 'name': project.name, 'description': project.description}


def projects_snapshot():
    return [serialize_project(p) for p in Project.objects.all()]


def winner_snapshot(winner=None):
    if winner is None:
        winner = Winner.load()
    if winner is None:
        return {'winnerId': None, 'announcedAt': None}
    return {
        'winnerId': winner.winner_id,
        'announcedAt': to_iso(winner.announced_at) if winner.announced_at else None,
    }


# ==============================================================================
# SIGNAL RECEIVERS (connected in VotingConfig.ready)
# ==============================================================================

def on_project_changed(sender, **kwargs):
    projects_feed.publish(projects_snapshot())


def on_winner_saved(sender, instance, **kwargs):
    winner_feed.publish(winner_snapshot(instance))


def on_winner_deleted(sender, **kwargs):
    winner_feed.publish({'winnerId': None, 'announcedAt': None})


class LiveState:
    """
    Local copy of the projects list and winner announcement.

    Usage:
        state = LiveState()
        state.attach()        # initial load + subscribe
        state.projects        # kept current by pushes
        state.detach()
    """

    def __init__(self, projects=None, winner=None):
        self.projects = list(projects or [])
        self.winner = dict(winner or {'winnerId': None, 'announcedAt': None})
        self._unsubscribers = []
        self._lock = threading.Lock()

    @property
    def attached(self):
        return bool(self._unsubscribers)

    def attach(self):
        with self._lock:
            if self._unsubscribers:
                return self
            self._unsubscribers = [
                projects_feed.subscribe(self.apply_projects),
                winner_feed.subscribe(self.apply_winner),
            ]
        self.apply_projects(projects_snapshot())
        self.apply_winner(winner_snapshot())
        return self

    def detach(self):
        with self._lock:
            unsubscribers, self._unsubscribers = self._unsubscribers, []
        for unsubscribe in unsubscribers:
            unsubscribe()

    def apply_projects(self, snapshot):
        self.projects = list(snapshot)

    def apply_winner(self, snapshot):
        self.winner = dict(snapshot)

    def find_project(self, project_id):
        return next((p for p in self.projects if p['id'] == project_id), None)


# Process-wide view used by the API; attached lazily on first request
live_state = LiveState()
