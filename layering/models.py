"""
Data classes shared by the layering pipeline, the cache and the HTTP layer.
"""

from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Dict, List


class ComplexityLevel(str, Enum):
    """Scene classes that drive initialization and iteration budgets."""

    SIMPLE = "simple"
    MEDIUM = "medium"
    COMPLEX = "complex"
    PORTRAIT = "portrait"


class LayerType(str, Enum):
    FOREGROUND = "foreground"
    BACKGROUND = "background"


@dataclass(frozen=True)
class ComplexityInfo:
    """Result of scene analysis at working resolution."""
    level: ComplexityLevel
    edge_density: float
    color_variance: float
    is_portrait: bool


@dataclass(frozen=True)
class BoundingBox:
    """Pixel rectangle in original image coordinates; all zeros means empty."""
    x: int = 0
    y: int = 0
    width: int = 0
    height: int = 0

    @property
    def is_empty(self) -> bool:
        return self.width == 0 and self.height == 0


@dataclass
class Layer:
    id: int
    type: LayerType
    bounding_box: BoundingBox
    mask: str
    confidence: float


@dataclass
class LayerResult:
    """Two-layer decomposition of one image, as returned to clients and cached."""
    md5: str
    width: int
    height: int
    layers: List[Layer] = field(default_factory=list)
    timestamp: int = 0

    @property
    def foreground(self) -> Layer:
        return self._layer(LayerType.FOREGROUND)

    @property
    def background(self) -> Layer:
        return self._layer(LayerType.BACKGROUND)

    def _layer(self, layer_type: LayerType) -> Layer:
        for layer in self.layers:
            if layer.type == layer_type:
                return layer
        raise KeyError(layer_type.value)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        for layer in data['layers']:
            layer['type'] = LayerType(layer['type']).value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LayerResult":
        """
        Rebuild a result from its JSON form.

        Raises:
            ValueError: If required keys are missing or hold invalid values
        """
        try:
            layers = [
                Layer(
                    id=int(item['id']),
                    type=LayerType(item['type']),
                    bounding_box=BoundingBox(**item['bounding_box']),
                    mask=item['mask'],
                    confidence=float(item['confidence']),
                )
                for item in data['layers']
            ]
            return cls(
                md5=data['md5'],
                width=int(data['width']),
                height=int(data['height']),
                layers=layers,
                timestamp=int(data.get('timestamp', 0)),
            )
        except (KeyError, TypeError) as e:
            raise ValueError(f"Malformed layer result: {e}") from e
