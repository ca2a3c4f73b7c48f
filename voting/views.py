"""
Voting views - app status, navigation, cast vote, projects, winner, results
"""
from django.db import DatabaseError
from django.utils import timezone
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView
import logging

from authentication.errors import AuthResult, ErrorKind
from .feeds import serialize_project, winner_snapshot
from .ledger import VoteLedgerGateway
from .models import Project, Winner
from .runtime import machine_for, require_admin, result_response, validation_error_response
from .serializers import (
    CastVoteSerializer,
    DeclareWinnerSerializer,
    NavigateSerializer,
    ProjectSerializer,
)

logger = logging.getLogger(__name__)


class AppStatusView(APIView):
    """
    Resolve and return the client's current screen.

    Query params / body (optional):
        code + email, or token: verification artifact from the email link.
        When present it is verified before anything else.

    Examples:
        GET /api/app/status/                         → current screen
        GET /api/app/status/?code=123456&email=a@x.com → verify, then Voting
    """

    def get(self, request):
        return self._status(request, request.query_params)

    def post(self, request):
        return self._status(request, request.data)

    def _status(self, request, params):
        machine = machine_for(request)

        code = params.get('code')
        email = params.get('email')
        token = params.get('token')

        if code or token:
            result = machine.resolve(code=code, email=email, token=token)
        elif params.get('refresh'):
            result = machine.resolve()
        else:
            result = machine.ensure_resolved()

        return result_response(result, machine)


class NavigateView(APIView):
    """
    Move between screens that have no side effects.

    Request body:
    - to: 'welcome' | 'registration' | 'admin_login'
    """

    def post(self, request):
        serializer = NavigateSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)

        machine = machine_for(request)
        machine.ensure_resolved()
        result = machine.navigate(serializer.validated_data['to'])
        return result_response(result, machine)


class CastVoteView(APIView):
    """
    Cast a vote for a project with the current voter session.

    Request body:
    - project_id: str

    Returns:
    - success: boolean
    - message: success/error message
    - voteInfo: {projectId, isJury}
    """

    def post(self, request):
        serializer = CastVoteSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)

        machine = machine_for(request)
        machine.ensure_resolved()

        result = machine.cast_vote(serializer.validated_data['project_id'])
        if result.success:
            return Response(
                {**result.to_response(), 'app': machine.snapshot()},
                status=status.HTTP_201_CREATED,
            )
        return result_response(result, machine)


class ProjectListView(APIView):
    """
    List projects (public) or create one (admin session required).
    """

    def get(self, request):
        projects = [serialize_project(p) for p in Project.objects.all()]
        return Response({'count': len(projects), 'projects': projects})

    def post(self, request):
        denied = require_admin(request)
        if denied:
            return result_response(denied)

        serializer = ProjectSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)

        project = serializer.save()
        logger.info(f"Project created: {project.id} - {project.name}")
        return Response(ProjectSerializer(project).data, status=status.HTTP_201_CREATED)


class ProjectDetailView(APIView):
    """
    Update or delete a project (admin session required).
    """

    def _get_project(self, project_id):
        return Project.objects.filter(id=project_id).first()

    def put(self, request, project_id):
        return self._update(request, project_id, partial=False)

    def patch(self, request, project_id):
        return self._update(request, project_id, partial=True)

    def _update(self, request, project_id, partial):
        denied = require_admin(request)
        if denied:
            return result_response(denied)

        project = self._get_project(project_id)
        if project is None:
            return result_response(AuthResult.fail(ErrorKind.NOT_FOUND, 'Proyecto no encontrado.'))

        serializer = ProjectSerializer(project, data=request.data, partial=partial)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)

        serializer.save()
        logger.info(f"Project updated: {project.id}")
        return Response(serializer.data)

    def delete(self, request, project_id):
        denied = require_admin(request)
        if denied:
            return result_response(denied)

        project = self._get_project(project_id)
        if project is None:
            return result_response(AuthResult.fail(ErrorKind.NOT_FOUND, 'Proyecto no encontrado.'))

        project.delete()
        logger.info(f"Project deleted: {project_id}")
        return Response(status=status.HTTP_204_NO_CONTENT)


class WinnerView(APIView):
    """
    Read the winner announcement (public) or declare it (admin session required).
    Declaring again overwrites the previous winner.
    """

    def get(self, request):
        return Response(winner_snapshot())

    def post(self, request):
        denied = require_admin(request)
        if denied:
            return result_response(denied)

        serializer = DeclareWinnerSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)

        winner = Winner.declare(serializer.validated_data['winner_id'], timezone.now())
        logger.info(f"Winner declared: {winner.winner_id}")
        return Response(winner_snapshot(winner), status=status.HTTP_201_CREATED)


class VotingResultsView(APIView):
    """
    Weighted results per project (jury votes count double).
    Admin session required.
    """

    def get(self, request):
        denied = require_admin(request)
        if denied:
            return result_response(denied)

        try:
            results = VoteLedgerGateway().tally()
        except DatabaseError as e:
            logger.error(f"Error computing results: {e}", exc_info=True)
            return result_response(AuthResult.fail(ErrorKind.TRANSIENT))

        total_votes = sum(r['voteCount'] for r in results)
        return Response({
            'total_votes': total_votes,
            'results': results,
        })
