from typing import Optional

from rest_framework import HTTP_HEADER_ENCODING
from rest_framework.request import Request

from rest_framework_simplejwt.authentication import JWTStatelessUserAuthentication
from rest_framework_simplejwt.models import TokenUser
from rest_framework_simplejwt.tokens import Token


class JWTAuthentication(JWTStatelessUserAuthentication):
    """
    Stateless JWT authentication for tokens minted by the external identity provider.

    The token is read from the Authorization header first and from the
    `access_token` cookie otherwise. No local user row is required: the caller
    is represented by a TokenUser built from the token claims.
    """

    www_authenticate_realm = "api"
    media_type = "application/json"

    def authenticate(self, request: Request) -> Optional[tuple[TokenUser, Token]]:
        header = self.get_header(request)
        if header is not None:
            raw_token = self.get_raw_token(header)
        else:
            cookie = request.COOKIES.get("access_token") or None
            if cookie is None:
                return None
            raw_token = cookie.encode(HTTP_HEADER_ENCODING)

        if raw_token is None:
            return None

        validated_token = self.get_validated_token(raw_token)

        return self.get_user(validated_token), validated_token
