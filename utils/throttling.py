from rest_framework.throttling import UserRateThrottle


class RoleRateThrottle(UserRateThrottle):
    """Rate limit that only applies to one kind of principal"""
    role = None

    def allow_request(self, request, view):
        if getattr(request.user, 'role', None) != self.role:
            return True
        return super().allow_request(request, view)

    def get_cache_key(self, request, view):
        return self.cache_format % {
            'scope': self.scope,
            'ident': f'{self.role}_{request.user.pk}'
        }


class AgentRateThrottle(RoleRateThrottle):
    scope = 'agent'
    role = 'agent'


class AdminRateThrottle(RoleRateThrottle):
    scope = 'admin'
    role = 'admin'


class ApartmentCreationThrottle(UserRateThrottle):
    scope = 'apartment_creation'


class BroadcastThrottle(UserRateThrottle):
    scope = 'broadcast'
