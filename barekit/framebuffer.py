"""A linear 24/32 bpp framebuffer with pixel, line, rectangle and circle drawing."""

from __future__ import annotations

FD_COLORS = (
    0x000000,  # stdin, never written
    0xFFFFFF,  # stdout
    0xFF0000,  # stderr
    0x00FF00,  # green
    0x0000FF,  # blue
    0x00FFFF,  # cyan
    0xFF00FF,  # magenta
    0xFFFF00,  # yellow
)


def fd_color(fd: int) -> int:
    """The text colour of a built-in output file descriptor."""
    if not 0 <= fd < len(FD_COLORS):
        raise ValueError(f"no colour for file descriptor {fd}")
    return FD_COLORS[fd]


class Framebuffer:
    """Pixel memory of ``width`` x ``height`` at 24 or 32 bits per pixel."""

    def __init__(self, width, height, bpp=32):
        if bpp not in (24, 32):
            raise ValueError(f"unsupported bits per pixel: {bpp}")
        if width <= 0 or height <= 0:
            raise ValueError("framebuffer dimensions must be positive")
        self.width = width
        self.height = height
        self.bpp = bpp
        self.pitch = width * (bpp // 8)
        self._memory = bytearray(self.pitch * height)

    @property
    def data(self) -> bytes:
        """The raw pixel memory."""
        return bytes(self._memory)

    def _within(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def _pixel_bytes(self, color: int) -> bytes:
        return (color & 0xFFFFFFFF).to_bytes(4, "little")[: self.bpp // 8]

    def put_pixel(self, color: int, x: int, y: int) -> None:
        """Write a 0xRRGGBB colour; points off the screen are ignored."""
        if not self._within(x, y):
            return
        step = self.bpp // 8
        offset = x * step + y * self.pitch
        self._memory[offset : offset + step] = self._pixel_bytes(color)

    def get_pixel(self, x: int, y: int) -> int:
        if not self._within(x, y):
            raise IndexError(f"pixel ({x}, {y}) is outside the screen")
        step = self.bpp // 8
        offset = x * step + y * self.pitch
        return int.from_bytes(self._memory[offset : offset + step], "little")

    def clear(self) -> None:
        self._memory[:] = bytes(len(self._memory))

    def draw_line(self, x0: int, y0: int, x1: int, y1: int, color: int) -> None:
        """Bresenham line, stopping early if it leaves the screen."""
        dx = abs(x1 - x0)
        dy = abs(y1 - y0)
        step_x = 1 if x0 < x1 else -1
        step_y = 1 if y0 < y1 else -1
        error = dx - dy
        while True:
            self.put_pixel(color, x0, y0)
            if (x0 == x1 and y0 == y1) or not self._within(x0, y0):
                return
            error2 = 2 * error
            if error2 > -dy:
                error -= dy
                x0 += step_x
            if error2 < dx:
                error += dx
                y0 += step_y

    def draw_rectangle(self, x0: int, y0: int, x1: int, y1: int, color: int) -> None:
        """Outline with (x0, y0) the top-left and (x1, y1) the bottom-right corner."""
        if x1 < x0 or y1 < y0:
            return
        self.draw_line(x0, y0, x1, y0, color)
        self.draw_line(x0, y0, x0, y1, color)
        self.draw_line(x1, y1, x0, y1, color)
        self.draw_line(x1, y1, x1, y0, color)

    def fill_rectangle(self, x0: int, y0: int, x1: int, y1: int, color: int) -> None:
        """Fill columns x0..x1-1 and rows y0..y1-1."""
        if x1 < x0 or y1 < y0:
            return
        left, right = max(x0, 0), min(x1, self.width)
        top, bottom = max(y0, 0), min(y1, self.height)
        if left >= right or top >= bottom:
            return
        step = self.bpp // 8
        span = self._pixel_bytes(color) * (right - left)
        for y in range(top, bottom):
            offset = y * self.pitch + left * step
            self._memory[offset : offset + len(span)] = span

    def draw_circle(self, x_center: int, y_center: int, radius: int, color: int) -> None:
        """Midpoint circle outline."""
        x, y, err = radius, 0, 0
        while x >= y:
            for px, py in (
                (x_center + x, y_center + y),
                (x_center + y, y_center + x),
                (x_center - y, y_center + x),
                (x_center - x, y_center + y),
                (x_center - x, y_center - y),
                (x_center - y, y_center - x),
                (x_center + y, y_center - x),
                (x_center + x, y_center - y),
            ):
                self.put_pixel(color, px, py)
            if err <= 0:
                y += 1
                err += 2 * y + 1
            if err > 0:
                x -= 1
                err -= 2 * x + 1

    def fill_circle(self, x_center: int, y_center: int, radius: int, color: int) -> None:
        """Fill every pixel within radius of the centre."""
        x0 = max(x_center - radius, 0)
        y0 = max(y_center - radius, 0)
        limit = radius * radius
        for x in range(x0, x_center + radius + 1):
            for y in range(y0, y_center + radius + 1):
                if (x - x_center) ** 2 + (y - y_center) ** 2 <= limit:
                    self.put_pixel(color, x, y)