import math
from typing import Tuple

Vector = Tuple[float, float]

EPSILON = 1e-6
SOUTH: Vector = (0.0, 1.0)  # y grows south on the battlefield


def add(a: Vector, b: Vector) -> Vector:
    return (a[0] + b[0], a[1] + b[1])


def sub(a: Vector, b: Vector) -> Vector:
    return (a[0] - b[0], a[1] - b[1])


def scale(v: Vector, k: float) -> Vector:
    return (v[0] * k, v[1] * k)


def length_squared(v: Vector) -> float:
    return v[0] * v[0] + v[1] * v[1]


def length(v: Vector) -> float:
    """Euclidean norm of a 2D vector."""
    return math.sqrt(length_squared(v))


def distance_squared(a: Vector, b: Vector) -> float:
    return length_squared(sub(b, a))


def distance(a: Vector, b: Vector) -> float:
    """Calculate Euclidean distance between two 2D positions."""
    return length(sub(b, a))


def normalize(v: Vector) -> Vector:
    """Normalize a 2D vector to unit length, pointing south when degenerate."""
    mag = length(v)
    if mag < EPSILON:
        return SOUTH
    return (v[0] / mag, v[1] / mag)


def rotate(v: Vector, angle: float) -> Vector:
    """Rotate counter-clockwise by angle radians."""
    c = math.cos(angle)
    s = math.sin(angle)
    return (v[0] * c - v[1] * s, v[0] * s + v[1] * c)


def angle_of(v: Vector) -> float:
    """Direction of v in radians from the positive x-axis."""
    return math.atan2(v[1], v[0])
