from django.apps import AppConfig
from django.db.models.signals import post_delete, post_save


class VotingConfig(AppConfig):
    name = 'voting'
    verbose_name = 'Votación'

    def ready(self):
        from . import feeds
        from .models import Project, Winner

        post_save.connect(feeds.on_project_changed, sender=Project, dispatch_uid='voting.project_saved')
        post_delete.connect(feeds.on_project_changed, sender=Project, dispatch_uid='voting.project_deleted')
        post_save.connect(feeds.on_winner_saved, sender=Winner, dispatch_uid='voting.winner_saved')
        post_delete.connect(feeds.on_winner_deleted, sender=Winner, dispatch_uid='voting.winner_deleted')
