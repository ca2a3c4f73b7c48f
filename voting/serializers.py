"""
Django REST Framework serializers for voting app.

These serializers handle JSON serialization/deserialization for:
- Projects (admin CRUD)
- Vote casting
- Winner declaration
- Screen navigation
"""

from rest_framework import serializers
from .models import Project
from .state_machine import AppState, NAVIGATION


class ProjectSerializer(serializers.ModelSerializer):
    """
    Serializer for projects listed on the voting screen.
    """
    class Meta:
        model = Project
        fields = [
            'id',
            'name',
            'description'
        ]
        read_only_fields = ['id']

    def validate_name(self, value):
        if not value.strip():
            raise serializers.ValidationError("Name is required.")
        return value.strip()

    def validate_description(self, value):
        if not value.strip():
            raise serializers.ValidationError("Description is required.")
        return value.strip()


class CastVoteSerializer(serializers.Serializer):
    """
    Serializer for casting a vote.
    Unknown project ids are not rejected here: the ledger records them
    as orphaned votes.
    """
    project_id = serializers.CharField(max_length=64)


class DeclareWinnerSerializer(serializers.Serializer):
    winner_id = serializers.CharField(max_length=64)

    def validate_winner_id(self, value):
        """Validate that project exists."""
        if not Project.objects.filter(id=value).exists():
            raise serializers.ValidationError("Project not found.")
        return value


class NavigateSerializer(serializers.Serializer):
    """Target screen for side-effect free navigation."""
    to = serializers.ChoiceField(choices=[state.value for state in NAVIGATION])

    def validate_to(self, value):
        return AppState(value)
