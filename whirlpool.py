#!/usr/bin/env python3
"""
Python implementation of the Whirlpool hash function (ISO/IEC 10118-3, NESSIE v3.0).
Produces 512-bit digests of arbitrary bit strings; see main() for a command-line entry point.
"""

import logging
import sys
from copy import deepcopy

__version__ = "1.0.0"

logger = logging.getLogger("whirlpool")

# --------------------------------------------------------------------
#                          Constants & Helpers
# --------------------------------------------------------------------

BlockBytes = 64
LengthBytes = 32
DigestBytes = 64
BlockBits = 8 * BlockBytes
Rounds = 10

SBox = [
    0x18, 0x23, 0xC6, 0xE8, 0x87, 0xB8, 0x01, 0x4F, 0x36, 0xA6, 0xD2, 0xF5, 0x79, 0x6F, 0x91, 0x52,
    0x60, 0xBC, 0x9B, 0x8E, 0xA3, 0x0C, 0x7B, 0x35, 0x1D, 0xE0, 0xD7, 0xC2, 0x2E, 0x4B, 0xFE, 0x57,
    0x15, 0x77, 0x37, 0xE5, 0x9F, 0xF0, 0x4A, 0xDA, 0x58, 0xC9, 0x29, 0x0A, 0xB1, 0xA0, 0x6B, 0x85,
    0xBD, 0x5D, 0x10, 0xF4, 0xCB, 0x3E, 0x05, 0x67, 0xE4, 0x27, 0x41, 0x8B, 0xA7, 0x7D, 0x95, 0xD8,
    0xFB, 0xEE, 0x7C, 0x66, 0xDD, 0x17, 0x47, 0x9E, 0xCA, 0x2D, 0xBF, 0x07, 0xAD, 0x5A, 0x83, 0x33,
    0x63, 0x02, 0xAA, 0x71, 0xC8, 0x19, 0x49, 0xD9, 0xF2, 0xE3, 0x5B, 0x88, 0x9A, 0x26, 0x32, 0xB0,
    0xE9, 0x0F, 0xD5, 0x80, 0xBE, 0xCD, 0x34, 0x48, 0xFF, 0x7A, 0x90, 0x5F, 0x20, 0x68, 0x1A, 0xAE,
    0xB4, 0x54, 0x93, 0x22, 0x64, 0xF1, 0x73, 0x12, 0x40, 0x08, 0xC3, 0xEC, 0xDB, 0xA1, 0x8D, 0x3D,
    0x97, 0x00, 0xCF, 0x2B, 0x76, 0x82, 0xD6, 0x1B, 0xB5, 0xAF, 0x6A, 0x50, 0x45, 0xF3, 0x30, 0xEF,
    0x3F, 0x55, 0xA2, 0xEA, 0x65, 0xBA, 0x2F, 0xC0, 0xDE, 0x1C, 0xFD, 0x4D, 0x92, 0x75, 0x06, 0x8A,
    0xB2, 0xE6, 0x0E, 0x1F, 0x62, 0xD4, 0xA8, 0x96, 0xF9, 0xC5, 0x25, 0x59, 0x84, 0x72, 0x39, 0x4C,
    0x5E, 0x78, 0x38, 0x8C, 0xD1, 0xA5, 0xE2, 0x61, 0xB3, 0x21, 0x9C, 0x1E, 0x43, 0xC7, 0xFC, 0x04,
    0x51, 0x99, 0x6D, 0x0D, 0xFA, 0xDF, 0x7E, 0x24, 0x3B, 0xAB, 0xCE, 0x11, 0x8F, 0x4E, 0xB7, 0xEB,
    0x3C, 0x81, 0x94, 0xF7, 0xB9, 0x13, 0x2C, 0xD3, 0xE7, 0x6E, 0xC4, 0x03, 0x56, 0x44, 0x7F, 0xA9,
    0x2A, 0xBB, 0xC1, 0x53, 0xDC, 0x0B, 0x9D, 0x6C, 0x31, 0x74, 0xF6, 0x46, 0xAC, 0x89, 0x14, 0xE1,
    0x16, 0x3A, 0x69, 0x09, 0x70, 0xB6, 0xD0, 0xED, 0xCC, 0x42, 0x98, 0xA4, 0x28, 0x5C, 0xF8, 0x86,
]

# First row of the circulant diffusion matrix cir(1, 1, 4, 1, 8, 5, 2, 9)
CirculantRow = [0x01, 0x01, 0x04, 0x01, 0x08, 0x05, 0x02, 0x09]

# x^8 + x^4 + x^3 + x^2 + 1
ReductionPolynomial = 0x11D

# rc[r] is row r-1 of the S-box read as a big-endian word
RoundConstants = [
    0x1823C6E887B8014F, 0x36A6D2F5796F9152, 0x60BC9B8EA30C7B35, 0x1DE0D7C22E4BFE57,
    0x157737E59FF04ADA, 0x58C9290AB1A06B85, 0xBD5D10F4CB3E0567, 0xE427418BA77D95D8,
    0xFBEE7C66DD17479E, 0xCA2DBF07AD5A8333,
]

Masks = [(1 << i) - 1 for i in range(65)]


class WhirlpoolError(Exception):
    """Base class for errors raised by this module."""


class WhirlpoolStateError(WhirlpoolError):
    """Raised when a hashing state is used after it has been finalized."""


def ror(value, right, bits):
    bot = value >> right
    top = (value & Masks[right]) << (bits - right)
    return top | bot

def gf_mul(a, b):
    # Multiplication in GF(2^8) modulo ReductionPolynomial
    product = 0
    while b:
        if b & 1:
            product ^= a
        a <<= 1
        if a & 0x100:
            a ^= ReductionPolynomial
        b >>= 1
    return product

def bytes2words(bb):
    return [int.from_bytes(bb[i : i + 8], "big") for i in range(0, len(bb), 8)]

def words2bytes(words):
    return b"".join(w.to_bytes(8, "big") for w in words)

def build_tables():
    """
    Expand the S-box into the eight 256-entry lookup tables C0..C7.

    C0[x] holds the row S[x] * CirculantRow, i.e. the combined effect of the
    non-linear layer and the diffusion matrix on one byte. Ct is C0 rotated
    right by 8t bits, which accounts for the byte's column in the state.
    """
    c0 = []
    for s in SBox:
        w = 0
        for m in CirculantRow:
            w = (w << 8) | gf_mul(s, m)
        c0.append(w)
    return tuple(tuple(ror(w, 8 * t, 64) for w in c0) for t in range(8))

CirculantTables = build_tables()

# Round keys are derived with the round function itself, keyed by (rc[r], 0, ..., 0)
RoundConstantKeys = tuple((rc,) + (0,) * 7 for rc in RoundConstants)

# --------------------------------------------------------------------
#                          Whirlpool Compression
# --------------------------------------------------------------------

def whirlpool_round(a, k):
    # Gamma, Pi & Theta come from the tables; Sigma is the XOR with k.
    # Output word i takes byte t from word i - t (negative indices wrap mod 8).
    c0, c1, c2, c3, c4, c5, c6, c7 = CirculantTables
    return [
        c0[a[i] >> 56]
        ^ c1[(a[i - 1] >> 48) & 0xFF]
        ^ c2[(a[i - 2] >> 40) & 0xFF]
        ^ c3[(a[i - 3] >> 32) & 0xFF]
        ^ c4[(a[i - 4] >> 24) & 0xFF]
        ^ c5[(a[i - 5] >> 16) & 0xFF]
        ^ c6[(a[i - 6] >> 8) & 0xFF]
        ^ c7[a[i - 7] & 0xFF]
        ^ k[i]
        for i in range(8)
    ]

def whirlpool_compress(hash_words, block, trace=None):
    """
    Miyaguchi-Preneel compression of one 64-byte block.

    The previous hash value keys the dedicated block cipher W, the block is
    the plaintext, and the result is W(block) ^ block ^ hash. Returns a new
    list of eight words; neither argument is modified.
    """
    assert len(block) == BlockBytes
    block_words = bytes2words(block)
    key = list(hash_words)
    state = [b ^ k for b, k in zip(block_words, key)]
    if trace is not None:
        trace("key_schedule", 0, list(key), list(state))

    for r, round_constant in enumerate(RoundConstantKeys, 1):
        key = whirlpool_round(key, round_constant)
        state = whirlpool_round(state, key)
        if trace is not None:
            trace("round", r, list(key), list(state))

    result = [h ^ s ^ b for h, s, b in zip(hash_words, state, block_words)]
    if trace is not None:
        trace("feed_forward", Rounds, None, list(result))
    return result

# --------------------------------------------------------------------
#                          Tracing
# --------------------------------------------------------------------

def format_matrix(words):
    return ["    " + " ".join("%02X" % b for b in w.to_bytes(8, "big")) for w in words]

def log_trace(stage, round_number, key, state):
    """Trace sink that writes each intermediate matrix to the module logger at DEBUG level."""
    if not logger.isEnabledFor(logging.DEBUG):
        return
    logger.debug("%s, round %d:", stage, round_number)
    if key is None:
        rows = format_matrix(state)
    else:
        rows = [k + "        " + s for k, s in zip(format_matrix(key), format_matrix(state))]
    for row in rows:
        logger.debug(row)

# --------------------------------------------------------------------
#                          Whirlpool State
# --------------------------------------------------------------------

class WhirlpoolState:
    """
    Single-use hashing state: absorb() any number of times, then finalize() once.

    Invariant between calls: 0 <= buffer_bits < BlockBits, and every bit of
    buffer[buffer_pos] past the valid ones is zero.
    """

    def __init__(self, trace=None):
        self.bit_length = bytearray(LengthBytes)
        self.buffer = bytearray(BlockBytes)
        self.buffer_bits = 0
        self.buffer_pos = 0
        self.hash = [0] * (DigestBytes // 8)
        self.finalized = False
        self.trace = trace

    def __deepcopy__(self, memo):
        # the trace sink is shared, everything else is duplicated
        other = self.__class__.__new__(self.__class__)
        other.__dict__.update(self.__dict__)
        other.bit_length = bytearray(self.bit_length)
        other.buffer = bytearray(self.buffer)
        other.hash = list(self.hash)
        return other

    def _check_open(self):
        if self.finalized:
            raise WhirlpoolStateError("hashing state has already been finalized")

    def _process_buffer(self):
        self.hash = whirlpool_compress(self.hash, self.buffer, self.trace)

    def _tally(self, source_bits):
        # 256-bit big-endian addition, least significant byte first
        carry = 0
        value = source_bits
        for i in range(LengthBytes - 1, -1, -1):
            if not (carry or value):
                break
            carry += self.bit_length[i] + (value & 0xFF)
            self.bit_length[i] = carry & 0xFF
            carry >>= 8
            value >>= 8

    def absorb(self, source, source_bits=None):
        """
        Append the first source_bits bits of source (most significant bit of
        each byte first). Defaults to every bit of source.
        """
        self._check_open()
        if source_bits is None:
            source_bits = 8 * len(source)
        if source_bits < 0 or source_bits > 8 * len(source):
            raise ValueError(
                f"source_bits must be between 0 and {8 * len(source)}, got {source_bits}"
            )
        self._tally(source_bits)
        if not source_bits:
            return

        buffer_rem = self.buffer_bits & 7
        if not buffer_rem and not source_bits & 7:
            self._absorb_aligned(source, source_bits >> 3)
            return

        buffer = self.buffer
        buffer_bits = self.buffer_bits
        buffer_pos = self.buffer_pos
        source_pos = 0

        # Each source byte tops up buffer[buffer_pos] and spills its low
        # bits into the next slot.
        while source_bits > 8:
            b = source[source_pos]
            buffer[buffer_pos] |= b >> buffer_rem
            buffer_pos += 1
            buffer_bits += 8 - buffer_rem
            if buffer_bits == BlockBits:
                self._process_buffer()
                buffer_bits = 0
                buffer_pos = 0
            buffer[buffer_pos] = (b << (8 - buffer_rem)) & 0xFF
            buffer_bits += buffer_rem
            source_bits -= 8
            source_pos += 1

        # now 1 <= source_bits <= 8, all of it in source[source_pos]
        b = source[source_pos] & (0xFF << (8 - source_bits)) & 0xFF
        buffer[buffer_pos] |= b >> buffer_rem
        if buffer_rem + source_bits < 8:
            buffer_bits += source_bits
        else:
            buffer_pos += 1
            buffer_bits += 8 - buffer_rem
            source_bits -= 8 - buffer_rem
            if buffer_bits == BlockBits:
                self._process_buffer()
                buffer_bits = 0
                buffer_pos = 0
            buffer[buffer_pos] = (b << (8 - buffer_rem)) & 0xFF
            buffer_bits += source_bits

        self.buffer_bits = buffer_bits
        self.buffer_pos = buffer_pos

    def _absorb_aligned(self, source, length):
        buffer = self.buffer
        buffer_pos = self.buffer_pos
        pos = 0
        while pos < length:
            take = min(BlockBytes - buffer_pos, length - pos)
            buffer[buffer_pos : buffer_pos + take] = source[pos : pos + take]
            buffer_pos += take
            pos += take
            if buffer_pos == BlockBytes:
                self._process_buffer()
                buffer_pos = 0
        buffer[buffer_pos] = 0
        self.buffer_pos = buffer_pos
        self.buffer_bits = 8 * buffer_pos

    def finalize(self):
        """Pad, append the bit length and return the 64-byte digest. Callable once."""
        self._check_open()
        buffer = self.buffer

        # append a '1'-bit; the rest of that byte is already zero
        buffer[self.buffer_pos] |= 0x80 >> (self.buffer_bits & 7)
        buffer_pos = self.buffer_pos + 1

        # no room left for the length: pad out this block and start another
        if buffer_pos > BlockBytes - LengthBytes:
            buffer[buffer_pos:] = bytes(BlockBytes - buffer_pos)
            self._process_buffer()
            buffer_pos = 0

        buffer[buffer_pos : BlockBytes - LengthBytes] = bytes(BlockBytes - LengthBytes - buffer_pos)
        buffer[BlockBytes - LengthBytes :] = self.bit_length
        self._process_buffer()

        self.buffer_pos = BlockBytes - LengthBytes
        self.buffer_bits = 0
        self.finalized = True
        logger.debug("finalized Whirlpool state after %d bits", int.from_bytes(self.bit_length, "big"))
        return words2bytes(self.hash)

# --------------------------------------------------------------------
#                          Whirlpool Hash Class
# --------------------------------------------------------------------

class WhirlpoolHash:
    name = "whirlpool"
    digest_size = DigestBytes
    block_size = BlockBytes

    def __init__(self, data=b"", trace=None):
        self.state = WhirlpoolState(trace)
        if data:
            self.update(data)

    def copy(self):
        return deepcopy(self)

    def update(self, data: bytes, bits=None):
        if isinstance(data, str):
            raise TypeError("Strings must be encoded before hashing")
        self.state.absorb(data, bits)

    def digest(self) -> bytes:
        final = deepcopy(self.state)
        return final.finalize()

    def hexdigest(self) -> str:
        return self.digest().hex()

def _as_bytes(value):
    if isinstance(value, str):
        return value.encode("utf-8")
    return bytes(value)

def whirlpool(data=b"", salt=None, trace=None) -> bytes:
    """Return the 64-byte Whirlpool digest of salt || data. Strings are UTF-8 encoded."""
    state = WhirlpoolState(trace)
    if salt:
        state.absorb(_as_bytes(salt))
    state.absorb(_as_bytes(data))
    return state.finalize()

def whirlpool_hex(data=b"", salt=None, trace=None) -> str:
    return whirlpool(data, salt, trace).hex()

# --------------------------------------------------------------------
#                                Main
# --------------------------------------------------------------------

def main(argv=None):
    messages = sys.argv[1:] if argv is None else argv
    if not messages:
        messages = ["The quick brown fox jumps over the lazy dog"]
    for msg in messages:
        print(f"whirlpool(\"{msg}\") = {whirlpool_hex(msg)}")

if __name__ == "__main__":
    main()
