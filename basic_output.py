from typing import List


class OutputBuffer:
    """Append-only list of PRINT lines."""

    def __init__(self):
        self.buffer: List[str] = []

    def clear(self):
        self.buffer = []

    def write_line(self, line):
        self.buffer.append(f"{line}")

    def __iter__(self):
        return iter(self.buffer)

    def __len__(self):
        return len(self.buffer)

    def __getitem__(self, i):
        return self.buffer[i]
