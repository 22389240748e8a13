DEFAULT_WIDTH = 32
DEFAULT_HEIGHT = 32
MAX_COLOR = 65536  # colours are 16-bit


class BasicDisplay:
    """Fixed-size pixel grid driven by SETPX / GETPX."""

    def __init__(self, width=DEFAULT_WIDTH, height=DEFAULT_HEIGHT):
        self.width = width
        self.height = height
        self.clear()

    def clear(self):
        # pixels[x][y], all black
        self.pixels = [[0] * self.height for _ in range(self.width)]

    def in_bounds(self, x, y):
        return 0 <= x < self.width and 0 <= y < self.height

    def set_pixel(self, x, y, color):
        # out of bounds: do nothing
        if not self.in_bounds(x, y):
            return
        if 0 <= color < MAX_COLOR:
            self.pixels[x][y] = color

    def get_pixel(self, x, y):
        if not self.in_bounds(x, y):
            return 0
        return self.pixels[x][y]
