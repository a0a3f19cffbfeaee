from django.conf import settings
from django.core.cache import cache
from django.db.models import Count, Q
from django.utils import timezone
from rest_framework import permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.response import Response
import logging

from analytics.models import ActivityLog
from apartments.models import Apartment
from bookings.models import Booking
from bookings.serializers import BookingSerializer
from inspections.models import InspectionRequest
from notifications.services import NotificationService
from reports.models import Report
from utils.routing import UUID_PATTERN, get_or_404, parse_uuid
from .authentication import issue_token
from .emails import send_agent_status_email, send_agent_welcome_email, send_welcome_email
from .models import Admin, Agent, User
from .permissions import IsAdmin, IsApprovedAgent, IsUser, has_role
from .serializers import (
    AdminRegistrationSerializer, AdminSerializer, AgentRegistrationSerializer,
    AgentSerializer, AgentStatusSerializer, LoginSerializer, UserRegistrationSerializer,
    UserSerializer,
)

logger = logging.getLogger('estate.accounts')


def authenticate_credentials(model, data):
    """Return the principal matching the posted email/password, or None"""
    serializer = LoginSerializer(data=data)
    serializer.is_valid(raise_exception=True)
    principal = model.objects.filter(
        email__iexact=serializer.validated_data['email']
    ).first()
    if principal is None or not principal.check_password(serializer.validated_data['password']):
        return None
    return principal


def invalid_credentials():
    return Response(
        {'error': 'Invalid email or password'},
        status=status.HTTP_401_UNAUTHORIZED
    )


class UserAccountViewSet(viewsets.GenericViewSet):
    """Renter signup, login and profile"""
    serializer_class = UserSerializer
    permission_classes = [IsUser]

    @action(detail=False, methods=['post'], permission_classes=[permissions.AllowAny],
            authentication_classes=[])
    def register(self, request):
        serializer = UserRegistrationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = serializer.save()

        send_welcome_email(user)
        logger.info(f"User registered: {user.email}")

        return Response({
            'message': 'User registered successfully',
            'token': issue_token(user),
            'user': UserSerializer(user).data
        }, status=status.HTTP_201_CREATED)

    @action(detail=False, methods=['post'], permission_classes=[permissions.AllowAny],
            authentication_classes=[])
    def login(self, request):
        user = authenticate_credentials(User, request.data)
        if user is None:
            return invalid_credentials()

        user.record_login()
        return Response({
            'message': 'Login successful',
            'token': issue_token(user),
            'user': UserSerializer(user).data
        })

    @action(detail=False, methods=['get', 'put'])
    def profile(self, request):
        if request.method == 'GET':
            return Response(UserSerializer(request.user).data)

        serializer = UserSerializer(request.user, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return Response({
            'message': 'Profile updated successfully',
            'user': serializer.data
        })


class AgentAccountViewSet(viewsets.GenericViewSet):
    """Agent onboarding, login, profile and dashboard"""
    serializer_class = AgentSerializer
    permission_classes = [IsApprovedAgent]

    @action(detail=False, methods=['post'], permission_classes=[permissions.AllowAny],
            authentication_classes=[], parser_classes=[MultiPartParser, FormParser])
    def register(self, request):
        serializer = AgentRegistrationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        agent = serializer.save()

        send_agent_welcome_email(agent)
        logger.info(f"Agent application received: {agent.email}")

        return Response({
            'message': 'Agent registered successfully. Please wait for admin approval.',
            'agent': AgentSerializer(agent).data
        }, status=status.HTTP_201_CREATED)

    @action(detail=False, methods=['post'], permission_classes=[permissions.AllowAny],
            authentication_classes=[])
    def login(self, request):
        agent = authenticate_credentials(Agent, request.data)
        if agent is None:
            return invalid_credentials()

        if not agent.is_approved:
            return Response(
                {'error': f'Your account is {agent.status}. Please wait for admin approval.'},
                status=status.HTTP_403_FORBIDDEN
            )

        agent.record_login()
        return Response({
            'message': 'Login successful',
            'token': issue_token(agent),
            'agent': AgentSerializer(agent).data
        })

    @action(detail=False, methods=['get', 'put'], parser_classes=[JSONParser, MultiPartParser, FormParser])
    def profile(self, request):
        if request.method == 'GET':
            return Response(AgentSerializer(request.user).data)

        serializer = AgentSerializer(request.user, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return Response({
            'message': 'Profile updated successfully',
            'agent': serializer.data
        })

    @action(detail=False, methods=['get'])
    def dashboard(self, request):
        agent = request.user
        cache_key = f'agent_dashboard_{agent.id}'
        data = cache.get(cache_key)

        if data is None:
            apartments = Apartment.objects.filter(agent=agent).aggregate(
                total=Count('id'),
                available=Count('id', filter=Q(availability=True)),
            )
            data = {
                'total_apartments': apartments['total'],
                'available_apartments': apartments['available'],
                'pending_inspections': InspectionRequest.objects.filter(
                    agent=agent, status='pending'
                ).count(),
                'total_bookings': Booking.objects.filter(apartment__agent=agent).count(),
            }
            cache.set(cache_key, data, settings.CACHE_TIMEOUTS['AGENT_DASHBOARD'])

        return Response(data)


class AdminAccountViewSet(viewsets.GenericViewSet):
    """Admin login, agent vetting and platform overview"""
    serializer_class = AdminSerializer
    permission_classes = [IsAdmin]

    @action(detail=False, methods=['post'], permission_classes=[permissions.AllowAny])
    def register(self, request):
        # The first admin bootstraps the platform; later admins are added by an admin
        if Admin.objects.exists() and not has_role(request, 'admin'):
            return Response({'error': 'Admin access only'}, status=status.HTTP_403_FORBIDDEN)

        serializer = AdminRegistrationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        admin = serializer.save()
        logger.info(f"Admin registered: {admin.email}")

        return Response({
            'message': 'Admin registered successfully',
            'admin': AdminSerializer(admin).data
        }, status=status.HTTP_201_CREATED)

    @action(detail=False, methods=['post'], permission_classes=[permissions.AllowAny],
            authentication_classes=[])
    def login(self, request):
        admin = authenticate_credentials(Admin, request.data)
        if admin is None:
            return invalid_credentials()

        admin.record_login()
        return Response({
            'message': 'Login successful',
            'token': issue_token(admin),
            'admin': AdminSerializer(admin).data
        })

    @action(detail=False, methods=['get'])
    def profile(self, request):
        return Response(AdminSerializer(request.user).data)

    @action(detail=False, methods=['get'])
    def dashboard(self, request):
        data = cache.get('admin_dashboard')

        if data is None:
            agents = Agent.objects.aggregate(
                total=Count('id'),
                pending=Count('id', filter=Q(status='pending')),
            )
            data = {
                'total_agents': agents['total'],
                'pending_agents': agents['pending'],
                'total_apartments': Apartment.objects.count(),
                'total_users': User.objects.count(),
                'open_reports': Report.objects.filter(status='open').count(),
            }
            cache.set('admin_dashboard', data, settings.CACHE_TIMEOUTS['DASHBOARD'])

        return Response(data)

    @action(detail=False, methods=['get'])
    def agents(self, request):
        queryset = Agent.objects.order_by('-created_at')
        agent_status = request.query_params.get('status')
        if agent_status:
            queryset = queryset.filter(status=agent_status)

        page = self.paginate_queryset(queryset)
        if page is not None:
            return self.get_paginated_response(AgentSerializer(page, many=True).data)
        return Response(AgentSerializer(queryset, many=True).data)

    @action(detail=False, methods=['get'], url_path='agents/pending')
    def pending_agents(self, request):
        queryset = Agent.objects.filter(status='pending').order_by('created_at')
        return Response({
            'count': queryset.count(),
            'agents': AgentSerializer(queryset, many=True).data
        })

    @action(detail=False, methods=['put'], url_path=f'agents/(?P<agent_id>{UUID_PATTERN})/status')
    def agent_status(self, request, agent_id=None):
        agent = get_or_404(Agent, 'Agent not found', pk=agent_id)
        serializer = AgentStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        previous = agent.status
        agent.status = serializer.validated_data['status']
        agent.status_changed_at = timezone.now()
        agent.verified = agent.status == 'approved'
        agent.save(update_fields=['status', 'status_changed_at', 'verified', 'updated_at'])

        ActivityLog.record(
            f'agent_{agent.status}', actor=request.user, resource=agent,
            details={'previous_status': previous}, request=request
        )
        NotificationService.notify_agent_status(agent)
        send_agent_status_email(agent)
        cache.delete('admin_dashboard')

        return Response({
            'message': f'Agent {agent.status} successfully',
            'agent': AgentSerializer(agent).data
        })

    @action(detail=False, methods=['delete'], url_path=f'agents/(?P<agent_id>{UUID_PATTERN})')
    def delete_agent(self, request, agent_id=None):
        agent = get_or_404(Agent, 'Agent not found', pk=agent_id)

        if agent.apartments.exists():
            return Response(
                {'error': 'Cannot delete agent with active apartments. Reject instead.'},
                status=status.HTTP_400_BAD_REQUEST
            )

        ActivityLog.record(
            'agent_deleted', actor=request.user, resource=agent,
            details={'email': agent.email}, request=request
        )
        agent.delete()
        cache.delete('admin_dashboard')
        return Response({'message': 'Agent deleted successfully'})

    @action(detail=False, methods=['get'])
    def users(self, request):
        queryset = User.objects.order_by('-created_at')
        page = self.paginate_queryset(queryset)
        if page is not None:
            return self.get_paginated_response(UserSerializer(page, many=True).data)
        return Response(UserSerializer(queryset, many=True).data)

    @action(detail=False, methods=['get'])
    def applicants(self, request):
        """Bookings with their renter and apartment, newest first"""
        queryset = Booking.objects.select_related('user', 'apartment', 'apartment__agent')
        apartment_id = request.query_params.get('apartment_id')
        if apartment_id:
            queryset = queryset.filter(apartment_id=parse_uuid(apartment_id, 'apartment_id'))
        queryset = queryset.order_by('-created_at')

        page = self.paginate_queryset(queryset)
        if page is not None:
            return self.get_paginated_response(BookingSerializer(page, many=True).data)
        return Response(BookingSerializer(queryset, many=True).data)
