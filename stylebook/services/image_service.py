import logging
import uuid
from datetime import UTC, datetime
from io import BytesIO
from pathlib import Path
from typing import Optional

from PIL import Image, ImageOps, UnidentifiedImageError

from stylebook.config import get_settings

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {".jpg", ".jpeg", ".png", ".webp"}
ALLOWED_MIME_TYPES = {
    "image/jpeg",
    "image/png",
    "image/webp",
}


class ImageService:
    """
    Local-filesystem blob store keyed ``<user_id>/<filename>``.

    Every upload is stored as a bounded original plus a thumbnail used in
    grids. Keys are what the database stores and what the image route serves.
    """

    def __init__(self, storage_path: Optional[str] = None):
        settings = get_settings()
        self.storage_path = Path(storage_path or settings.storage_path)
        self.storage_path.mkdir(parents=True, exist_ok=True)
        # Thumbnail: used in cards/grids. 400px supports ~200px display on retina
        self.sizes = {
            "original": (settings.original_max_size, settings.original_max_size),
            "thumbnail": (settings.thumbnail_size, settings.thumbnail_size),
        }
        self.quality = settings.image_quality
        self.max_upload_bytes = settings.max_upload_size_mb * 1024 * 1024

    def _get_user_path(self, user_id: uuid.UUID) -> Path:
        user_path = self.storage_path / str(user_id)
        user_path.mkdir(parents=True, exist_ok=True)
        return user_path

    def _generate_filename(self, extension: str = ".jpg") -> str:
        """Generate a unique filename."""
        timestamp = datetime.now(UTC).strftime("%Y%m%d_%H%M%S")
        unique_id = uuid.uuid4().hex[:8]
        return f"{timestamp}_{unique_id}{extension}"

    def _resize_image(
        self,
        image: Image.Image,
        max_size: tuple[int, int],
        quality: int = 90,
    ) -> bytes:
        """Resize image maintaining aspect ratio."""
        # Convert to RGB if necessary (handles RGBA, P mode, etc.)
        if image.mode in ("RGBA", "P", "LA"):
            background = Image.new("RGB", image.size, (255, 255, 255))
            if image.mode == "P":
                image = image.convert("RGBA")
            background.paste(image, mask=image.split()[-1] if image.mode in ("RGBA", "LA") else None)
            image = background
        elif image.mode != "RGB":
            image = image.convert("RGB")

        image.thumbnail(max_size, Image.Resampling.LANCZOS)

        output = BytesIO()
        image.save(output, format="JPEG", quality=quality, optimize=True)
        return output.getvalue()

    def process_and_store(
        self,
        user_id: uuid.UUID,
        image_data: bytes,
        original_filename: str,
    ) -> dict[str, str]:
        """
        Store an upload as original and thumbnail.

        Returns:
        {
            "image_path": "user_id/20240116_123456_abc123.jpg",
            "thumbnail_path": "user_id/20240116_123456_abc123_thumb.jpg",
        }
        """
        ext = Path(original_filename).suffix.lower()
        if ext not in ALLOWED_EXTENSIONS:
            raise ValueError(f"Unsupported file type: {ext}")

        try:
            image = ImageOps.exif_transpose(Image.open(BytesIO(image_data)))
        except (UnidentifiedImageError, OSError) as e:
            raise ValueError(f"Invalid image file: {original_filename}") from e

        base_name = self._generate_filename("")
        user_path = self._get_user_path(user_id)
        paths = {}

        for size_name, max_size in self.sizes.items():
            suffix = "" if size_name == "original" else "_thumb"
            filename = f"{base_name}{suffix}.jpg"
            resized = self._resize_image(image.copy(), max_size, quality=self.quality)
            (user_path / filename).write_bytes(resized)
            paths[size_name] = f"{user_id}/{filename}"

        logger.info(f"Stored image {paths['original']} for user {user_id}")
        return {
            "image_path": paths["original"],
            "thumbnail_path": paths["thumbnail"],
        }

    def store_generated(self, user_id: uuid.UUID, image_data: bytes) -> str:
        """Store an AI-rendered outfit picture and return its key."""
        image = Image.open(BytesIO(image_data))
        filename = f"outfit_{self._generate_filename('.jpg')}"
        resized = self._resize_image(image, self.sizes["original"], quality=self.quality)
        (self._get_user_path(user_id) / filename).write_bytes(resized)
        return f"{user_id}/{filename}"

    def get_image_path(self, relative_path: str) -> Path:
        """Get full path for an image."""
        return self.storage_path / relative_path

    def delete_images(self, paths: list[Optional[str]]) -> None:
        """Delete stored files; missing files are ignored."""
        for path in paths:
            if path:
                full_path = self.storage_path / path
                if full_path.exists():
                    full_path.unlink()
                    logger.info(f"Deleted image {path}")

    def validate_image(self, image_data: bytes, content_type: str | None) -> bool:
        """Validate image data and content type."""
        if content_type not in ALLOWED_MIME_TYPES:
            return False

        if len(image_data) > self.max_upload_bytes:
            return False

        try:
            with Image.open(BytesIO(image_data)) as image:
                image.verify()
            return True
        except (UnidentifiedImageError, OSError):
            return False
