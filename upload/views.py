from rest_framework import status
from rest_framework.decorators import api_view, parser_classes, permission_classes
from rest_framework.parsers import FormParser, MultiPartParser
from rest_framework.response import Response
import logging

from accounts.permissions import IsApprovedAgent
from .services import ImageUploadError, ImageUploadService

logger = logging.getLogger('estate.upload')


@api_view(['POST'])
@permission_classes([IsApprovedAgent])
@parser_classes([MultiPartParser, FormParser])
def upload_image(request):
    """Upload one apartment image and return the URL to store in ``images``"""
    if 'file' not in request.FILES:
        return Response({'error': 'No file provided'}, status=status.HTTP_400_BAD_REQUEST)

    try:
        stored = ImageUploadService().save(
            request.FILES['file'], folder=request.data.get('folder', 'apartments')
        )
    except ImageUploadError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    logger.info(f"Agent {request.user.pk} uploaded {stored['path']}")
    return Response({'message': 'File uploaded successfully', **stored}, status=status.HTTP_201_CREATED)
