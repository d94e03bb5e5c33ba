import numpy as np

from facefinder.grid import Point, Rectangle

MINIMUM_SKIN_OBJECT_SIZE_MULTIPLIER = 64
MAXIMUM_ASPECT_RATIO = 2.4


def flood_fill(mask, start_at, limit_to):
    """
    Collect the 4-connected points that share start_at's mask value without leaving
    limit_to. Uses an explicit stack so large regions can't exhaust the call stack.

    Args:
        mask (Grid): Boolean grid
        start_at (Point): Seed point, must lie within limit_to
        limit_to (Rectangle): Area the fill may not leave

    Returns:
        list of Point in fill order
    """
    limit_to = Rectangle(*limit_to)
    if not limit_to.lies_within(mask.width, mask.height):
        raise ValueError(f"limit_to {limit_to} is outside of the {mask.width}x{mask.height} mask")
    if not limit_to.contains(start_at):
        raise ValueError(f"start_at {start_at} is outside of {limit_to}")

    values = mask.values
    value_at_origin = values[start_at[1], start_at[0]]
    filled = np.zeros((limit_to.height, limit_to.width), dtype=bool)
    points = []
    pixels = [tuple(start_at)]
    while pixels:
        x, y = pixels.pop()
        if (x < limit_to.left) or (x >= limit_to.right) or (y < limit_to.top) or (y >= limit_to.bottom):
            continue
        if filled[y - limit_to.top, x - limit_to.left] or (values[y, x] != value_at_origin):
            continue
        filled[y - limit_to.top, x - limit_to.left] = True
        points.append(Point(x, y))
        pixels.append((x - 1, y))
        pixels.append((x + 1, y))
        pixels.append((x, y - 1))
        pixels.append((x, y + 1))
    return points


def bounding_rectangle(points):
    xs = [p.x for p in points]
    ys = [p.y for p in points]
    left = min(xs)
    top = min(ys)
    return Rectangle(left, top, (max(xs) - left) + 1, (max(ys) - top) + 1)


def find_skin_objects(skin_mask, scale):
    """Split the masked pixels into connected objects, ignoring any very small ones."""
    everything = Rectangle(0, 0, skin_mask.width, skin_mask.height)
    assigned = np.zeros((skin_mask.height, skin_mask.width), dtype=bool)
    skin_objects = []
    for y, x in np.argwhere(skin_mask.values):
        if assigned[y, x]:
            continue
        points_in_object = flood_fill(skin_mask, Point(int(x), int(y)), everything)
        for point in points_in_object:
            assigned[point.y, point.x] = True
        skin_objects.append(points_in_object)
    minimum_size = MINIMUM_SKIN_OBJECT_SIZE_MULTIPLIER * scale
    return [skin_object for skin_object in skin_objects if len(skin_object) >= minimum_size]


def has_enclosed_hole(skin_mask, bounds, scale):
    """
    True if any unmasked region within bounds never touches the edge of bounds (so it
    is fully enclosed by skin) and is larger than scale pixels.
    """
    values = skin_mask.values
    assigned = np.zeros((bounds.height, bounds.width), dtype=bool)
    for y in range(bounds.top, bounds.bottom):
        for x in range(bounds.left, bounds.right):
            if values[y, x] or assigned[y - bounds.top, x - bounds.left]:
                continue
            negative_space = flood_fill(skin_mask, Point(x, y), bounds)
            for point in negative_space:
                assigned[point.y - bounds.top, point.x - bounds.left] = True

            touches_edge = any(
                (p.x == bounds.left) or (p.x == bounds.right - 1) or (p.y == bounds.top) or (p.y == bounds.bottom - 1)
                for p in negative_space
            )
            if touches_edge:
                continue  # open to the background
            if len(negative_space) <= scale:
                continue  # too small to be anything but noise
            return True
    return False


def identify_faces_from_skin_mask(skin_mask, scale):
    """
    Candidate face regions: the bounding rectangle of every sufficiently large skin
    object that fully encloses a non-skin hole (eyes and mouths aren't skin coloured).
    At most one rectangle is returned per object.
    """
    if scale <= 0:
        raise ValueError(f"scale must be greater than zero, got {scale}")

    face_regions = []
    for skin_object in find_skin_objects(skin_mask, scale):
        bounds = bounding_rectangle(skin_object)
        if has_enclosed_hole(skin_mask, bounds, scale):
            face_regions.append(bounds)
    return face_regions


def aspect_ratio_filter(areas, maximum_aspect_ratio=MAXIMUM_ASPECT_RATIO):
    """Drop long, narrow regions - they are unlikely to be a meaningful face capture."""
    allowed_areas = []
    for area in areas:
        if (area.width <= 0) or (area.height <= 0):
            raise ValueError(f"invalid region {area} (both dimensions must be positive)")
        longest_side_multiple = max(area.width, area.height) / min(area.width, area.height)
        if longest_side_multiple > maximum_aspect_ratio:
            continue
        allowed_areas.append(area)
    return allowed_areas


def remove_subsumed_regions(areas, area_multiple=2, overlap_fraction=0.75):
    """
    Drop any region that mostly lies inside another region that is much larger (a
    good match over most of a face sometimes comes with a small, redundant one).
    """
    areas = list(areas)
    kept = []
    for area in areas:
        obsolete = any(
            (other.area > (area.area * area_multiple)) and (other.intersect(area).area > (overlap_fraction * area.area))
            for other in areas
        )
        if not obsolete:
            kept.append(area)
    return kept


def default_face_region_filter(areas):
    return remove_subsumed_regions(aspect_ratio_filter(areas))


def no_face_region_filter(areas):
    return list(areas)


def expand_rectangle(area, percentage_to_add, width, height):
    """
    Inflate area by percentage_to_add of its own width/height on every side, then
    clip it to a width x height image.
    """
    area = Rectangle(*area)
    if (width <= 0) or (height <= 0):
        raise ValueError(f"image dimensions must be positive, got {width}x{height}")
    if not area.lies_within(width, height):
        raise ValueError(f"region {area} is outside of the {width}x{height} image")
    if percentage_to_add < 0:
        raise ValueError("percentage_to_add must not be negative")

    expanded = area.inflate(int(round(area.width * percentage_to_add)), int(round(area.height * percentage_to_add)))
    return expanded.intersect(Rectangle(0, 0, width, height))


def scale_rectangle(area, scale, width, height):
    """
    Scale a region found in a downsized image back up to the original width x
    height image, making sure rounding can't push it past the image edges.
    """
    if scale <= 0:
        raise ValueError(f"scale must be greater than zero, got {scale}")
    if (width <= 0) or (height <= 0):
        raise ValueError(f"image dimensions must be positive, got {width}x{height}")

    left = int(round(area.left * scale))
    top = int(round(area.top * scale))
    return Rectangle.from_ltrb(
        left,
        top,
        min(left + int(round(area.width * scale)), width),
        min(top + int(round(area.height * scale)), height),
    )
