import io
import uuid

from django.conf import settings
from django.core.files.base import ContentFile
from django.core.files.storage import default_storage
from PIL import Image, UnidentifiedImageError

MAX_DIMENSIONS = (1920, 1080)
ALLOWED_FOLDERS = ('apartments', 'profiles', 'reviews', 'general')


class ImageUploadError(ValueError):
    pass


class ImageUploadService:
    """Validate, normalize and store listing images"""

    def __init__(self, max_size=None):
        self.max_size = max_size or settings.IMAGE_UPLOAD_MAX_SIZE

    def open_image(self, file):
        if file.size > self.max_size:
            raise ImageUploadError(f'File size exceeds {self.max_size // (1024 * 1024)}MB limit')
        try:
            file.seek(0)
            Image.open(file).verify()
            # verify() leaves the image unusable; reopen for processing
            file.seek(0)
            return Image.open(file)
        except (UnidentifiedImageError, OSError, SyntaxError):
            raise ImageUploadError('Invalid image file')

    def normalize(self, image):
        """Flatten transparency onto white and cap the size at MAX_DIMENSIONS"""
        if image.mode in ('RGBA', 'LA'):
            background = Image.new('RGB', image.size, (255, 255, 255))
            background.paste(image, mask=image.split()[-1])
            image = background
        elif image.mode != 'RGB':
            image = image.convert('RGB')

        max_width, max_height = MAX_DIMENSIONS
        if image.width > max_width or image.height > max_height:
            image.thumbnail(MAX_DIMENSIONS, Image.Resampling.LANCZOS)
        return image

    def save(self, file, folder='general'):
        """Store the image as JPEG and return its public URL"""
        if folder not in ALLOWED_FOLDERS:
            folder = 'general'
        image = self.normalize(self.open_image(file))

        buffer = io.BytesIO()
        image.save(buffer, format='JPEG', quality=85, optimize=True)
        path = default_storage.save(f'uploads/{folder}/{uuid.uuid4()}.jpg', ContentFile(buffer.getvalue()))

        return {
            'url': f'{settings.MEDIA_URL}{path}',
            'path': path,
            'width': image.width,
            'height': image.height,
            'size': buffer.tell(),
        }
