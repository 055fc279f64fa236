from drf_spectacular.utils import extend_schema
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from users.serializers import MeSerializer


class MeView(APIView):
    """
    Profile of the authenticated user plus the tenant scope and
    capabilities every other endpoint will evaluate for them.
    """

    permission_classes = [IsAuthenticated]
    serializer_class = MeSerializer

    @extend_schema(
        tags=["auth"],
        responses={200: MeSerializer},
        description="Get current authenticated user profile",
    )
    def get(self, request):
        return Response(MeSerializer(request.user).data)
