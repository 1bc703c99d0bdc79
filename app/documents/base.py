from abc import ABC, abstractmethod

from PIL import Image


class BasePageRenderer(ABC):
    """Contract for all PDF page rasterization adapters."""

    @abstractmethod
    def page_count(self, document: bytes) -> int:
        """Return the number of pages in *document*.

        Raises:
            RenderError: if the document cannot be decoded.
        """

    @abstractmethod
    def render_page(self, document: bytes, page_index: int, scale: float) -> Image.Image:
        """Render one page to an opaque RGB image.

        Args:
            document: Raw PDF bytes.
            page_index: Zero-based page index.
            scale: Resolution multiplier; 1.0 renders one pixel per PDF point.

        Returns:
            RGB image with transparent regions composited onto white.

        Raises:
            RenderError: if the index is out of range or rendering fails.
        """
