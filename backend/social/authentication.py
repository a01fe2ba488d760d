"""
DRF authentication class for "Authorization: Bearer <access token>".
"""
from rest_framework.authentication import BaseAuthentication, get_authorization_header

from .credentials import ACCESS, user_from_token
from .exceptions import UnauthorizedError


class BearerTokenAuthentication(BaseAuthentication):
    keyword = b'bearer'

    def authenticate(self, request):
        auth = get_authorization_header(request).split()
        if not auth or auth[0].lower() != self.keyword:
            return None
        if len(auth) != 2:
            raise UnauthorizedError('Authorization header is missing or invalid')
        try:
            token = auth[1].decode()
        except UnicodeError:
            raise UnauthorizedError('Invalid token')

        user = user_from_token(token, ACCESS)
        return user, token

    def authenticate_header(self, request):
        return 'Bearer'
