"""사진에서 대표 색상 팔레트 추출

Pillow 로 사진을 디코딩해 픽셀을 샘플링하고, 거리 임계값 기반 그리디 군집화로
대표 색을 고른 뒤 채도/휘도/색온도로 분위기(mood)를 분류한다.
"""
import math
from dataclasses import dataclass
from io import BytesIO
from typing import Iterable, List, Optional, Sequence, Tuple

from PIL import Image

from ..models.schemas import ColorAnalysis, ColorPalette, PaletteMood
from ..utils.logger import logger

Pixel = Tuple[int, int, int]

CLUSTER_DISTANCE_THRESHOLD = 30.0
WHITE_LUMINANCE = 0.9
BLACK_LUMINANCE = 0.1

FALLBACK_COLORS = ["#F5F5F0", "#E8E4DD", "#D4CFC4", "#A8A39A"]
FALLBACK_DESCRIPTION = "A calming neutral palette perfect for focused work sessions."

MOOD_DESCRIPTIONS = {
    PaletteMood.FOCUS: "Neutral color scheme with {count} balanced tones that promote concentration and minimize distractions.",
    PaletteMood.CREATIVITY: "Inspiring palette of {count} warm colors that stimulate creative thinking and innovation.",
    PaletteMood.CALM: "Soothing combination of {count} gentle colors that create a peaceful and relaxing atmosphere.",
    PaletteMood.ENERGIZING: "Vibrant selection of {count} bright colors that boost energy and motivation.",
}


@dataclass(frozen=True)
class PaletteOptions:
    max_colors: int = 6
    ignore_white: bool = True
    ignore_black: bool = True

    def __post_init__(self):
        if self.max_colors < 1:
            raise ValueError(f"max_colors must be at least 1, got {self.max_colors}")


class _Cluster:
    """누적 합으로 중심을 갱신하는 색상 군집"""

    def __init__(self, pixel: Pixel):
        self.count = 1
        self.sums = [float(pixel[0]), float(pixel[1]), float(pixel[2])]
        self.centroid = (float(pixel[0]), float(pixel[1]), float(pixel[2]))

    def add(self, pixel: Pixel) -> None:
        self.count += 1
        for i in range(3):
            self.sums[i] += pixel[i]
        self.centroid = tuple(s / self.count for s in self.sums)


def relative_luminance(r: float, g: float, b: float) -> float:
    """sRGB 선형화 후 상대 휘도 (0-1)"""
    def linear(channel: float) -> float:
        c = channel / 255
        return c / 12.92 if c <= 0.03928 else ((c + 0.055) / 1.055) ** 2.4

    return 0.2126 * linear(r) + 0.7152 * linear(g) + 0.0722 * linear(b)


def saturation(r: float, g: float, b: float) -> float:
    high = max(r, g, b)
    return 0.0 if high == 0 else (high - min(r, g, b)) / high


def rgb_to_hex(rgb: Sequence[float]) -> str:
    return "#" + "".join(f"{min(255, max(0, int(round(c)))):02X}" for c in rgb)


def hex_to_rgb(value: str) -> Pixel:
    digits = value.lstrip("#")
    return int(digits[0:2], 16), int(digits[2:4], 16), int(digits[4:6], 16)


def _distance(a: Sequence[float], b: Sequence[float]) -> float:
    return math.sqrt((a[0] - b[0]) ** 2 + (a[1] - b[1]) ** 2 + (a[2] - b[2]) ** 2)


def _filter_pixels(pixels: Iterable[Sequence[int]], options: PaletteOptions) -> List[Pixel]:
    kept = []
    for pixel in pixels:
        r, g, b = pixel[0], pixel[1], pixel[2]
        luminance = relative_luminance(r, g, b)
        if options.ignore_white and luminance > WHITE_LUMINANCE:
            continue
        if options.ignore_black and luminance < BLACK_LUMINANCE:
            continue
        kept.append((r, g, b))
    return kept


def cluster_pixels(pixels: List[Pixel], threshold: float = CLUSTER_DISTANCE_THRESHOLD) -> List[_Cluster]:
    """가장 가까운 중심이 임계값 미만이면 합류, 아니면 새 군집"""
    clusters: List[_Cluster] = []
    for pixel in pixels:
        nearest = None
        nearest_distance = threshold
        for cluster in clusters:
            distance = _distance(pixel, cluster.centroid)
            if distance < nearest_distance:
                nearest, nearest_distance = cluster, distance

        if nearest is None:
            clusters.append(_Cluster(pixel))
        else:
            nearest.add(pixel)

    # 개수 내림차순 (동률은 먼저 생긴 군집 우선)
    return sorted(clusters, key=lambda c: -c.count)


def classify_mood(colors: Sequence[Sequence[float]]) -> PaletteMood:
    """평균 채도/휘도 + 따뜻한 색 다수결로 분위기 결정"""
    if not colors:
        return PaletteMood.FOCUS

    warm = sum(1 for r, _, b in colors if r > b)
    cool = len(colors) - warm
    avg_saturation = sum(saturation(*c) for c in colors) / len(colors)
    avg_luminance = sum(relative_luminance(*c) for c in colors) / len(colors)

    if avg_saturation > 0.6 and avg_luminance > 0.5:
        return PaletteMood.ENERGIZING
    if avg_saturation > 0.4 and warm > cool:
        return PaletteMood.CREATIVITY
    if avg_luminance < 0.3 or avg_saturation < 0.2:
        return PaletteMood.FOCUS
    return PaletteMood.CALM


def describe_palette(mood: PaletteMood, count: int) -> str:
    return MOOD_DESCRIPTIONS[mood].format(count=count)


def fallback_palette() -> ColorPalette:
    return ColorPalette(
        name="Neutral Workspace",
        colors=list(FALLBACK_COLORS),
        mood=PaletteMood.FOCUS,
        description=FALLBACK_DESCRIPTION,
    )


def extract_palette(
    pixel_samples: Iterable[Sequence[int]],
    options: Optional[PaletteOptions] = None,
) -> ColorPalette:
    """픽셀 샘플 → ColorPalette (실패 시 고정 대체 팔레트)"""
    options = options or PaletteOptions()
    try:
        pixels = _filter_pixels(pixel_samples, options)
        clusters = cluster_pixels(pixels)[:options.max_colors]
        if not clusters:
            logger.warning("No color clusters survived filtering, using fallback palette")
            return fallback_palette()

        centroids = [c.centroid for c in clusters]
        mood = classify_mood(centroids)
        logger.info(f"Extracted {len(centroids)} colors from {len(pixels)} samples (mood={mood.value})")

        return ColorPalette(
            colors=[rgb_to_hex(c) for c in centroids],
            mood=mood,
            description=describe_palette(mood, len(centroids)),
        )
    except Exception as e:
        logger.warning(f"Color extraction failed, using fallback palette: {e}", exc_info=True)
        return fallback_palette()


def sample_pixels(image_bytes: bytes, sample_size: int = 64) -> List[Pixel]:
    """사진 디코딩 후 sample_size×sample_size 이하로 축소해 픽셀 목록 반환"""
    with Image.open(BytesIO(image_bytes)) as image:
        rgb = image.convert("RGB")
        rgb.thumbnail((sample_size, sample_size))
        data = rgb.tobytes()

    return [(data[i], data[i + 1], data[i + 2]) for i in range(0, len(data), 3)]


def palette_from_color_analysis(
    color_analysis: Optional[ColorAnalysis],
    max_colors: int = 6,
) -> Optional[ColorPalette]:
    """사진을 읽을 수 없을 때 모델이 준 색상으로 팔레트 구성"""
    if color_analysis is None or not color_analysis.dominant_colors:
        return None

    colors = color_analysis.dominant_colors[:max(1, max_colors)]
    try:
        mood = PaletteMood(color_analysis.mood)
    except ValueError:
        mood = classify_mood([hex_to_rgb(c) for c in colors])

    return ColorPalette(
        colors=list(colors),
        mood=mood,
        description=color_analysis.color_harmony or describe_palette(mood, len(colors)),
    )
