"""Decompression codecs used by the streaming extractor.

A codec is any object implementing ``StreamTransform``: it consumes an
async stream of compressed bytes and yields decompressed bytes. The
extractor only depends on this protocol, so the xz codec can be swapped
for any equivalent implementation.
"""

import lzma
from collections.abc import AsyncIterator
from typing import Protocol


class StreamTransform(Protocol):
    """Byte-stream transform placed between a reader and a sink."""

    def transform(self, source: AsyncIterator[bytes]) -> AsyncIterator[bytes]:
        """Consume ``source`` and yield transformed chunks."""
        ...


class XzTransform:
    """Incremental xz decompression.

    Concatenated xz streams are decoded back to back. Input that ends in
    the middle of a stream raises ``lzma.LZMAError``.
    """

    async def transform(
        self, source: AsyncIterator[bytes]
    ) -> AsyncIterator[bytes]:
        decompressor = lzma.LZMADecompressor(format=lzma.FORMAT_XZ)
        async for chunk in source:
            data = chunk
            while data:
                if decompressor.eof:
                    decompressor = lzma.LZMADecompressor(
                        format=lzma.FORMAT_XZ
                    )
                output = decompressor.decompress(data)
                if output:
                    yield output
                data = decompressor.unused_data if decompressor.eof else b""

        if not decompressor.eof:
            msg = "Compressed data ended before the end-of-stream marker"
            raise lzma.LZMAError(msg)
