import argparse
import heapq
import math
from typing import Dict, Iterable, List, NamedTuple, Optional, Sequence, Tuple, Union

ALPHABET_SIZE = 256
PAD_SYMBOL = ALPHABET_SIZE # symbol of the padding leaf, never a real byte

BytesLike = Union[bytes, bytearray, memoryview, str]


class HuffmanError(Exception):
    """Base class for every error raised by this module."""


class DecodeError(HuffmanError, ValueError):
    """The encoded bits cannot be decoded against the given tree."""


class MalformedBitError(DecodeError):
    def __init__(self, bit, position: int):
        super().__init__(f"Invalid bit {bit!r} at position {position}")
        self.bit = bit
        self.position = position


class TruncatedStreamError(DecodeError):
    def __init__(self, bit_count: int):
        super().__init__(f"Bit stream ends in the middle of a code after {bit_count} bits")
        self.bit_count = bit_count


class InternalEncodingError(HuffmanError, RuntimeError):
    """A byte has no code: the code table was not built from this data."""


class HuffmanNode: # Node for Huffman tree
    def __init__(self, symbol, frequency, left=None, right=None):
        self.symbol = symbol    # byte, PAD_SYMBOL or None for internal nodes
        self.frequency = frequency
        self.left = left
        self.right = right
        # smallest symbol below this node, breaks frequency ties
        self.order = symbol if symbol is not None else min(left.order, right.order)

    def is_leaf(self) -> bool:
        return self.left is None and self.right is None

    def __lt__(self, other):
        return (self.frequency, self.order) < (other.frequency, other.order)

    def __repr__(self):
        if self.is_leaf():
            return f"HuffmanNode(symbol={self.symbol}, frequency={self.frequency})"
        return f"HuffmanNode(frequency={self.frequency}, left={self.left!r}, right={self.right!r})"


class HuffmanEncodedResult(NamedTuple):
    encoded: str # '0'/'1' characters, len() is the exact bit count
    tree: Optional[HuffmanNode]


def _as_bytes(data: BytesLike) -> bytes:
    if isinstance(data, str):
        try:
            return data.encode("latin-1")
        except UnicodeEncodeError as exc:
            raise ValueError(f"Only characters U+0000..U+00FF fit the byte alphabet: {exc}") from exc
    return bytes(data)


def build_frequency_table(data: BytesLike) -> List[int]: # count every byte value
    frequency_table = [0] * ALPHABET_SIZE
    for byte in _as_bytes(data):
        frequency_table[byte] += 1
    return frequency_table


def build_huffman_tree(frequency_table: Sequence[int]) -> Optional[HuffmanNode]:
    """
    Greedy minimum merge over a heap keyed on (frequency, symbol)
    Returns None when no symbol occurs
    """
    priority_queue = [HuffmanNode(symbol, frequency)
                      for symbol, frequency in enumerate(frequency_table) if frequency > 0]
    if not priority_queue:
        return None

    # One distinct symbol would give a depth-0 tree and an empty code.
    # The padding leaf forces a one-bit code for it.
    if len(priority_queue) == 1:
        priority_queue.append(HuffmanNode(PAD_SYMBOL, 1))

    heapq.heapify(priority_queue)

    while len(priority_queue) > 1:
        left = heapq.heappop(priority_queue)
        right = heapq.heappop(priority_queue)
        merged_node = HuffmanNode(None, left.frequency + right.frequency, left, right)
        heapq.heappush(priority_queue, merged_node)

    return priority_queue[0] # root of the tree


def generate_huffman_codes(root: Optional[HuffmanNode]) -> Dict[int, str]:
    codes = {}

    def generate_codes_helper(node, current_code):
        if node.is_leaf():
            if node.symbol != PAD_SYMBOL:
                codes[node.symbol] = current_code
            return

        generate_codes_helper(node.left, current_code + '0')
        generate_codes_helper(node.right, current_code + '1')

    if root is not None:
        generate_codes_helper(root, '')
    return codes


def huffman_encode(data: BytesLike, code_map: Dict[int, str]) -> str:
    try:
        return ''.join(code_map[byte] for byte in _as_bytes(data))
    except KeyError as exc:
        raise InternalEncodingError(f"No code for symbol {exc.args[0]}") from exc


def huffman_decode(bits: Iterable, root: Optional[HuffmanNode]) -> bytes:
    """
    Walks the tree one bit at a time, emitting a byte at every leaf
    The walk has to finish back at the root
    """
    decoded_bytes = bytearray()
    current_node = root
    bit_count = 0

    for bit in bits:
        if root is None:
            raise DecodeError("Cannot decode a non-empty bit stream without a tree")

        if bit == '0' or bit == 0:
            current_node = current_node.left
        elif bit == '1' or bit == 1:
            current_node = current_node.right
        else:
            raise MalformedBitError(bit, bit_count)
        bit_count += 1

        if current_node.is_leaf():
            if current_node.symbol == PAD_SYMBOL:
                raise DecodeError(f"Bits ending at position {bit_count - 1} address the padding leaf")
            decoded_bytes.append(current_node.symbol)
            current_node = root # reset to the root for the next symbol

    if current_node is not root:
        raise TruncatedStreamError(bit_count)

    return bytes(decoded_bytes)


def compress(data: BytesLike) -> HuffmanEncodedResult:
    data = _as_bytes(data)
    root = build_huffman_tree(build_frequency_table(data))
    if root is None:
        return HuffmanEncodedResult('', None)
    return HuffmanEncodedResult(huffman_encode(data, generate_huffman_codes(root)), root)


def decompress(encoded: Iterable, tree: Optional[HuffmanNode]) -> bytes:
    return huffman_decode(encoded, tree)


# Bit packing

def pack_bits(bits: str) -> Tuple[bytes, int]:
    """
    Packs a '0'/'1' string MSB first
    Returns (packed_bytes, pad_bits) where pad_bits is number of 0 bits added at the end
    """
    out = bytearray()
    acc = 0
    acc_bits = 0

    for position, ch in enumerate(bits):
        if ch == '1':
            acc = (acc << 1) | 1
        elif ch == '0':
            acc = acc << 1
        else:
            raise MalformedBitError(ch, position)
        acc_bits += 1
        if acc_bits == 8:
            out.append(acc)
            acc = 0
            acc_bits = 0

    pad_bits = 0
    if acc_bits != 0:
        pad_bits = 8 - acc_bits
        out.append(acc << pad_bits)

    return bytes(out), pad_bits


def unpack_bits(packed: bytes, pad_bits: int) -> str:
    if not 0 <= pad_bits < 8:
        raise ValueError(f"pad_bits must be in 0..7, got {pad_bits}")
    if pad_bits and not packed:
        raise ValueError("pad_bits given for an empty buffer")

    bits = ''.join(format(byte, '08b') for byte in packed)
    return bits[:len(bits) - pad_bits]


# Analysis

def code_lengths(root: Optional[HuffmanNode]) -> Dict[int, int]:
    return {symbol: len(code) for symbol, code in generate_huffman_codes(root).items()}


def weighted_path_length(root: Optional[HuffmanNode]) -> int:
    """Sum of depth * frequency over the leaves of real symbols."""
    total = 0
    stack = [(root, 0)] if root is not None else []
    while stack:
        node, depth = stack.pop()
        if node.is_leaf():
            if node.symbol != PAD_SYMBOL:
                total += depth * node.frequency
        else:
            stack.append((node.left, depth + 1))
            stack.append((node.right, depth + 1))
    return total


def average_code_length(frequency_table: Sequence[int], code_map: Dict[int, str]) -> float:
    total = sum(frequency_table)
    if total == 0:
        return 0.0
    return sum(frequency * len(code_map[symbol])
               for symbol, frequency in enumerate(frequency_table) if frequency > 0) / total


def entropy(frequency_table: Sequence[int]) -> float: # Shannon entropy, bits per symbol
    total = sum(frequency_table)
    if total == 0:
        return 0.0
    h = 0.0
    for frequency in frequency_table:
        if frequency > 0:
            p = frequency / total
            h -= p * math.log2(p)
    return h


# Demo

def main(argv=None) -> int:
    ap = argparse.ArgumentParser(description="Encode then decode a sample string with Huffman coding")
    ap.add_argument("text", nargs="?", default="hello world!", help="Text to encode (latin-1 characters)")
    args = ap.parse_args(argv)

    result = compress(args.text)
    decoded = decompress(result.encoded, result.tree)
    print(f"encoded message = {result.encoded}")
    print(f"decoded message = {decoded.decode('latin-1')}")
    for symbol, code in sorted(generate_huffman_codes(result.tree).items(), key=lambda item: (len(item[1]), item[1])):
        print(f"  {chr(symbol)!r}: {code}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
