"""CLIP image encoder running on ONNX Runtime.

Primary image-embedding tier.  The exported CLIP vision tower lives at
``CLIP_IMAGE_ONNX`` (default ``models/clip-image.onnx``); without the file
or with a file that does not load, the tier reports itself unavailable and
the hash tier takes over.

Preprocessing follows CLIP: RGB, bicubic resize of the short side to 224,
centre crop to 224x224, scale to [0, 1], normalise with the CLIP channel
mean/std, CHW layout with a batch axis.  The raw output is tiled or cut to
the target dimension and L2-normalised so image vectors live in the same
space size as text vectors.
"""

from __future__ import annotations

import asyncio
import threading
from pathlib import Path
from typing import Any

import numpy as np
import onnxruntime as ort
import structlog
from PIL import Image

from src.interfaces.image_embedding_provider import IImageEmbeddingProvider
from src.utils.errors import RAGError
from src.utils.images import is_decodable_image, open_rgb

logger = structlog.get_logger(logger_name=__name__)

_INPUT_SIZE = 224
_CLIP_MEAN = np.array([0.48145466, 0.4578275, 0.40821073], dtype=np.float32)
_CLIP_STD = np.array([0.26862954, 0.26130258, 0.27577711], dtype=np.float32)

_INPUT_CANDIDATES = ("pixel_values", "image", "images", "input")
_OUTPUT_CANDIDATES = ("image_embeds", "pooler_output", "embeddings", "output", "last_hidden_state")


def preprocess(image: Image.Image) -> np.ndarray:
    """Return a ``(1, 3, 224, 224)`` float32 tensor for *image*."""
    image = image.convert("RGB")
    width, height = image.size
    scale = _INPUT_SIZE / min(width, height)
    resized = image.resize(
        (max(_INPUT_SIZE, round(width * scale)), max(_INPUT_SIZE, round(height * scale))),
        Image.Resampling.BICUBIC,
    )
    left = (resized.width - _INPUT_SIZE) // 2
    top = (resized.height - _INPUT_SIZE) // 2
    cropped = resized.crop((left, top, left + _INPUT_SIZE, top + _INPUT_SIZE))

    pixels = np.asarray(cropped, dtype=np.float32) / 255.0
    pixels = (pixels - _CLIP_MEAN) / _CLIP_STD
    return pixels.transpose(2, 0, 1)[np.newaxis, ...].astype(np.float32)


def fit_and_normalize(vector: np.ndarray, dimension: int) -> list[float]:
    """Tile or cut *vector* to *dimension* entries and L2-normalise it."""
    flat = np.asarray(vector, dtype=np.float64).ravel()
    if flat.size == 0:
        return [0.0] * dimension
    if flat.size != dimension:
        flat = np.resize(flat, dimension)
    norm = np.linalg.norm(flat)
    if norm > 0:
        flat = flat / norm
    return flat.tolist()


class OnnxClipImageEmbeddingProvider(IImageEmbeddingProvider):
    """CLIP vision encoder loaded lazily from an ONNX file.

    Parameters
    ----------
    model_path:
        Path to the exported vision model.
    dimension:
        Output vector length (the text embedding dimension).
    """

    def __init__(self, model_path: str | Path = "models/clip-image.onnx", dimension: int = 1024) -> None:
        self._model_path = Path(model_path)
        self._dimension = dimension
        self._session: ort.InferenceSession | None = None
        self._input_name: str | None = None
        self._output_name: str | None = None
        self._load_lock = threading.Lock()
        self._load_failed = False

    # ------------------------------------------------------------------
    # IImageEmbeddingProvider implementation
    # ------------------------------------------------------------------

    async def embed(self, image_bytes: bytes) -> list[float]:
        """Run the encoder in a worker thread and return the fitted vector.

        Raises
        ------
        RAGError
            If the model cannot be loaded or inference fails.
        """
        try:
            return await asyncio.to_thread(self._embed_sync, image_bytes)
        except RAGError:
            raise
        except Exception as exc:
            raise RAGError(
                message=f"CLIP inference failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

    def get_dimension(self) -> int:
        return self._dimension

    def is_available(self) -> bool:
        """Return ``True`` once the model file exists and a session loads.

        The first call loads the session; a load failure is remembered so
        later probes answer ``False`` without touching the file again.
        """
        if self._load_failed or not self._model_path.is_file():
            return False
        try:
            self._ensure_session()
        except RAGError as exc:
            logger.warning("clip_model_unusable", path=str(self._model_path), error=exc.message)
            return False
        return True

    def can_process(self, image_bytes: bytes) -> bool:
        return is_decodable_image(image_bytes)

    def get_provider_name(self) -> str:
        return "onnx-clip"

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _embed_sync(self, image_bytes: bytes) -> list[float]:
        session = self._ensure_session()
        tensor = preprocess(open_rgb(image_bytes))
        outputs = session.run([self._output_name], self._build_inputs(session, tensor))
        return fit_and_normalize(outputs[0], self._dimension)

    def _ensure_session(self) -> ort.InferenceSession:
        with self._load_lock:
            if self._session is not None:
                return self._session
            try:
                session = ort.InferenceSession(
                    str(self._model_path), providers=["CPUExecutionProvider"]
                )
            except Exception as exc:
                self._load_failed = True
                raise RAGError(
                    message=f"Failed to load CLIP model '{self._model_path}': {exc}",
                    provider_name=self.get_provider_name(),
                ) from exc

            input_names = [i.name for i in session.get_inputs()]
            output_names = [o.name for o in session.get_outputs()]
            self._input_name = next((n for n in _INPUT_CANDIDATES if n in input_names), input_names[0])
            self._output_name = next(
                (n for n in _OUTPUT_CANDIDATES if n in output_names), output_names[0]
            )
            self._session = session
            logger.info(
                "clip_model_loaded",
                path=str(self._model_path),
                input=self._input_name,
                output=self._output_name,
            )
            return session

    def _build_inputs(self, session: ort.InferenceSession, tensor: np.ndarray) -> dict[str, Any]:
        # Dual-tower exports also declare text inputs; feed them empty tensors.
        feeds: dict[str, Any] = {self._input_name: tensor}
        for meta in session.get_inputs():
            if meta.name == self._input_name:
                continue
            shape = [d if isinstance(d, int) and d > 0 else 1 for d in meta.shape]
            feeds[meta.name] = np.zeros(shape, dtype=np.int64)
        return feeds
