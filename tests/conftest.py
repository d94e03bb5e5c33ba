import numpy as np
import pytest

SKIN = (224, 172, 105)
BACKGROUND = (20, 40, 160)
FACE_CENTRE = (100, 100)
FACE_RADIUS = 70
EYE_CENTRES = ((75, 85), (125, 85))
EYE_RADIUS = 8


def _disc(height, width, centre, radius):
    y, x = np.ogrid[:height, :width]
    return ((x - centre[0]) ** 2) + ((y - centre[1]) ** 2) <= radius ** 2


@pytest.fixture
def face_image():
    """A skin toned disc with two dark eyes on a blue background, 200x200 RGB."""
    pixels = np.empty((200, 200, 3), dtype=np.uint8)
    pixels[:] = BACKGROUND
    pixels[_disc(200, 200, FACE_CENTRE, FACE_RADIUS)] = SKIN
    for eye in EYE_CENTRES:
        pixels[_disc(200, 200, eye, EYE_RADIUS)] = (0, 0, 0)
    return pixels
