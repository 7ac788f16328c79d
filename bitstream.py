"""
Побитовые потоки ввода/вывода поверх байтовых файлов.
Биты читаются и записываются начиная со старшего.
"""

import io
from typing import BinaryIO


NO_DATA = -1
CHUNK_SIZE = 64 * 1024


class BitInputStream:
    def __init__(self, source: BinaryIO):
        # Второй проход сжатия требует перемотки в начало
        if not source.seekable():
            source = io.BytesIO(source.read())

        self.source = source
        self.start = source.tell()
        self.chunk = b''
        self.pos = 0
        self.buffer = 0
        self.bits_left = 0

    @staticmethod
    def from_bytes(data: bytes) -> 'BitInputStream':
        return BitInputStream(io.BytesIO(data))

    def _next_byte(self) -> int:
        if self.pos >= len(self.chunk):
            self.chunk = self.source.read(CHUNK_SIZE)
            self.pos = 0
            if not self.chunk:
                return NO_DATA

        byte = self.chunk[self.pos]
        self.pos += 1
        return byte

    def read_bits(self, count: int) -> int:
        """
        Возвращает следующие count бит или NO_DATA, если их осталось меньше.
        Чистый конец входа и обрыв посреди значения намеренно не различаются:
        оба случая для вызывающего кода фатальны.
        """
        if count < 1:
            raise ValueError(f"Invalid bit count: {count}")

        while self.bits_left < count:
            byte = self._next_byte()
            if byte == NO_DATA:
                return NO_DATA

            self.buffer = (self.buffer << 8) | byte
            self.bits_left += 8

        self.bits_left -= count
        value = self.buffer >> self.bits_left
        self.buffer &= (1 << self.bits_left) - 1

        return value

    def reset(self):
        self.source.seek(self.start)
        self.chunk = b''
        self.pos = 0
        self.buffer = 0
        self.bits_left = 0


class BitOutputStream:
    def __init__(self, sink: BinaryIO):
        self.sink = sink
        self.pending = bytearray()
        self.buffer = 0
        self.bits_used = 0
        self.bits_written = 0

    def write_bits(self, count: int, value: int):
        if count < 1:
            raise ValueError(f"Invalid bit count: {count}")

        self.buffer = (self.buffer << count) | (value & ((1 << count) - 1))
        self.bits_used += count
        self.bits_written += count

        while self.bits_used >= 8:
            self.bits_used -= 8
            self.pending.append((self.buffer >> self.bits_used) & 0xFF)

        self.buffer &= (1 << self.bits_used) - 1

        if len(self.pending) >= CHUNK_SIZE:
            self.sink.write(bytes(self.pending))
            self.pending.clear()

    def flush(self):
        """Дополняет последний байт нулями. Вызывается один раз в конце потока."""
        if self.bits_used:
            self.pending.append((self.buffer << (8 - self.bits_used)) & 0xFF)
            self.buffer = 0
            self.bits_used = 0

        if self.pending:
            self.sink.write(bytes(self.pending))
            self.pending.clear()
