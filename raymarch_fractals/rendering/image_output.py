"""
PNG export and resampling for rendered frames.

Rendered frames are written as 8-bit RGB PNG files. The settings that
produced a frame travel with it as a JSON text chunk, so a render can be
identified (and reproduced) from the file alone.
"""

import numpy as np
from typing import Dict, Any, Optional, Tuple
from pathlib import Path
from dataclasses import dataclass, asdict, field
import json
import logging
from datetime import datetime

from PIL import Image, PngImagePlugin

from .. import __version__

logger = logging.getLogger(__name__)

METADATA_KEY = "RenderMetadata"


@dataclass
class RenderMetadata:
    """Settings a frame was rendered with."""

    fractal_type: str
    resolution: Tuple[int, int]  # width, height
    supersampling: int
    color_mode: str
    camera_position: Tuple[float, float, float]
    camera_look_at: Tuple[float, float, float]
    render_time_seconds: float
    timestamp: str = ""
    software_version: str = __version__
    fractal_parameters: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if not self.timestamp:
            self.timestamp = datetime.now().isoformat()

    def to_json(self) -> str:
        return json.dumps(asdict(self), indent=2)

    @classmethod
    def from_json(cls, text: str) -> 'RenderMetadata':
        data = json.loads(text)
        # JSON has no tuples
        for key in ('resolution', 'camera_position', 'camera_look_at'):
            if key in data:
                data[key] = tuple(data[key])
        return cls(**data)


class ImageExporter:
    """Writes RGB frames as PNG with an optional metadata chunk."""

    def save_image(self, frame: np.ndarray, filepath: Path,
                   metadata: Optional[RenderMetadata] = None) -> None:
        """
        Save an RGB frame.

        Args:
            frame: RGB array of shape (height, width, 3); non-uint8 input is clipped
            filepath: Output path, must end in .png
            metadata: Render settings to embed

        Raises:
            ValueError: For a non-PNG path or a frame that is not (H, W, 3)
        """
        filepath = Path(filepath)
        if filepath.suffix.lower() != '.png':
            raise ValueError(f"Unsupported format '{filepath.suffix}'. Only .png is written")

        if frame.ndim != 3 or frame.shape[2] != 3:
            raise ValueError(f"Expected RGB frame (H, W, 3), got {frame.shape}")
        if frame.dtype != np.uint8:
            frame = np.clip(frame, 0, 255).astype(np.uint8)

        pnginfo = PngImagePlugin.PngInfo()
        if metadata is not None:
            pnginfo.add_text("Software", f"raymarch-fractals v{metadata.software_version}")
            pnginfo.add_text(METADATA_KEY, metadata.to_json())

        image = Image.fromarray(np.ascontiguousarray(frame))
        image.save(filepath, "PNG", pnginfo=pnginfo)
        logger.info(f"Saved image: {filepath} ({image.width}x{image.height})")

    def extract_metadata_from_image(self, filepath: Path) -> Optional[RenderMetadata]:
        """Read back the embedded render settings, or None if the file has none."""
        with Image.open(filepath) as image:
            text = getattr(image, 'text', {})
            if METADATA_KEY in text:
                return RenderMetadata.from_json(text[METADATA_KEY])
        return None


class ImageProcessor:
    """Resampling used to bring supersampled frames down to output size."""

    RESAMPLING = {
        'lanczos': Image.Resampling.LANCZOS,
        'bicubic': Image.Resampling.BICUBIC,
        'bilinear': Image.Resampling.BILINEAR,
        'nearest': Image.Resampling.NEAREST,
    }

    def resize_image(self, frame: np.ndarray, new_size: Tuple[int, int],
                     method: str = 'lanczos') -> np.ndarray:
        """
        Resize an RGB frame.

        Args:
            frame: uint8 RGB array
            new_size: Target (width, height)
            method: One of RESAMPLING's keys

        Returns:
            Resized uint8 array of shape (height, width, 3)
        """
        if method not in self.RESAMPLING:
            raise ValueError(f"Unknown resampling method: {method}")

        image = Image.fromarray(np.ascontiguousarray(frame, dtype=np.uint8))
        return np.array(image.resize(new_size, self.RESAMPLING[method]))
