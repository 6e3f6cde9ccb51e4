import unittest

from typedbf import ZERO, Counter, EncodingError, Opcode, OutputBuffer, ParseError, Program, Tape, decode, parse
from typedbf.decoder import to_bytes, try_decode


class CounterTests(unittest.TestCase):
    def test_zero_is_default(self) -> None:
        self.assertEqual(Counter(), ZERO)
        self.assertEqual(ZERO.value, 0)

    def test_increment_is_unbounded(self) -> None:
        counter = ZERO
        for _ in range(300):
            counter = counter.increment()
        self.assertEqual(counter.value, 300)
        big = Counter(2**80)
        self.assertEqual(big.increment().value, 2**80 + 1)

    def test_decrement_undoes_increment(self) -> None:
        for value in (0, 1, 7, 255, 256):
            counter = Counter(value)
            self.assertEqual(counter.increment().decrement(), counter)

    def test_decrement_saturates_at_zero(self) -> None:
        self.assertEqual(ZERO.decrement(), ZERO)
        self.assertEqual(Counter(1).decrement().decrement(), ZERO)

    def test_negative_value_rejected(self) -> None:
        with self.assertRaises(ValueError):
            Counter(-1)

    def test_int_conversion(self) -> None:
        self.assertEqual(int(Counter(42)), 42)
        self.assertTrue(ZERO.is_zero())
        self.assertFalse(Counter(3).is_zero())


class TapeTests(unittest.TestCase):
    def test_read_past_end_grows_tape(self) -> None:
        tape = Tape()
        self.assertEqual(len(tape), 0)
        self.assertEqual(tape.read_at(4), ZERO)
        self.assertEqual(len(tape), 5)
        self.assertEqual(tape.values(), [0, 0, 0, 0, 0])

    def test_read_within_bounds_keeps_length(self) -> None:
        tape = Tape([1, 2, 3])
        self.assertEqual(tape.read_at(1).value, 2)
        self.assertEqual(len(tape), 3)

    def test_write_then_read(self) -> None:
        tape = Tape()
        tape.write_at(3, 9)
        self.assertEqual(tape.read_at(3).value, 9)
        self.assertEqual(tape.values(), [0, 0, 0, 9])

    def test_increment_and_decrement_at(self) -> None:
        tape = Tape([1])
        tape.increment_at(0)
        tape.increment_at(2)
        tape.decrement_at(1)
        self.assertEqual(tape.values(), [2, 0, 1])

    def test_move_left_saturates(self) -> None:
        tape = Tape([5])
        for _ in range(3):
            tape.move_left()
        self.assertEqual(tape.pointer, 0)
        self.assertEqual(len(tape), 1)

    def test_move_right_grows_lazily(self) -> None:
        tape = Tape()
        for _ in range(1000):
            tape.move_right()
        self.assertEqual(tape.pointer, 1000)
        self.assertEqual(len(tape), 0)
        self.assertEqual(tape.current(), ZERO)
        self.assertEqual(len(tape), 1001)

    def test_window_does_not_grow(self) -> None:
        tape = Tape([1, 2])
        self.assertEqual(tape.window(1, 5), [2, 0, 0, 0])
        self.assertEqual(tape.window(4, 6), [0, 0])
        self.assertEqual(len(tape), 2)

    def test_copy_is_independent(self) -> None:
        tape = Tape([1], pointer=0)
        clone = tape.copy()
        clone.increment_at(0)
        clone.move_right()
        self.assertEqual(tape.values(), [1])
        self.assertEqual(tape.pointer, 0)
        self.assertNotEqual(tape, clone)

    def test_negative_index_rejected(self) -> None:
        with self.assertRaises(IndexError):
            Tape().read_at(-1)


class OutputBufferTests(unittest.TestCase):
    def test_append_preserves_order(self) -> None:
        buffer = OutputBuffer()
        for value in (3, 1, 2):
            buffer.append(Counter(value))
        self.assertEqual(buffer.values(), [3, 1, 2])
        self.assertEqual(len(buffer), 3)
        self.assertEqual(buffer[0], Counter(3))


class ProgramTests(unittest.TestCase):
    def test_parse_maps_symbols(self) -> None:
        program = parse("+-><.[]")
        self.assertEqual(
            list(program),
            [
                Opcode.INCR_CELL,
                Opcode.DECR_CELL,
                Opcode.MOVE_RIGHT,
                Opcode.MOVE_LEFT,
                Opcode.PRINT,
                Opcode.LOOP_START,
                Opcode.LOOP_END,
            ],
        )

    def test_parse_skips_comments(self) -> None:
        program = parse("add + then, print .\n")
        self.assertEqual(str(program), "+.")

    def test_doubled_operators_expand(self) -> None:
        self.assertEqual(str(parse("..>><<<-->")), "..>><<<-->")
        self.assertEqual(len(parse("->")), 2)

    def test_jump_map_pairs_brackets(self) -> None:
        program = parse("[[]+]")
        self.assertEqual(program.jump_map[0], 4)
        self.assertEqual(program.jump_map[4], 0)
        self.assertEqual(program.jump_map[1], 2)
        self.assertEqual(program.jump_map[2], 1)

    def test_unmatched_close_reports_source_offset(self) -> None:
        with self.assertRaises(ParseError) as ctx:
            parse("ab+]")
        self.assertEqual(ctx.exception.position, 3)

    def test_unmatched_open(self) -> None:
        with self.assertRaises(ParseError) as ctx:
            parse("+[[]")
        self.assertEqual(ctx.exception.position, 1)

    def test_from_opcodes(self) -> None:
        program = Program.from_opcodes([Opcode.LOOP_START, Opcode.DECR_CELL, Opcode.LOOP_END])
        self.assertEqual(str(program), "[-]")
        self.assertEqual(program.jump_map[0], 2)
        with self.assertRaises(ParseError):
            Program.from_opcodes([Opcode.LOOP_END])

    def test_program_is_immutable(self) -> None:
        program = parse("[-]")
        with self.assertRaises(TypeError):
            program.jump_map[0] = 1  # type: ignore[index]


class DecoderTests(unittest.TestCase):
    def test_round_trip_bytes(self) -> None:
        data = "héllo ✓".encode("utf-8")
        self.assertEqual(decode(list(data)).encode("utf-8"), data)

    def test_accepts_output_buffer(self) -> None:
        buffer = OutputBuffer([Counter(72), Counter(105)])
        self.assertEqual(decode(buffer), "Hi")

    def test_empty_output(self) -> None:
        self.assertEqual(decode([]), "")

    def test_out_of_range_value_fails(self) -> None:
        with self.assertRaises(EncodingError) as ctx:
            decode([65, 256, 66])
        self.assertEqual(ctx.exception.position, 1)
        self.assertEqual(ctx.exception.value, 256)

    def test_invalid_utf8_fails(self) -> None:
        with self.assertRaises(EncodingError) as ctx:
            decode([65, 0xFF])
        self.assertIsInstance(ctx.exception.__cause__, UnicodeDecodeError)

    def test_other_encoding(self) -> None:
        self.assertEqual(decode([0xE9], encoding="latin-1"), "é")

    def test_to_bytes_and_try_decode(self) -> None:
        self.assertEqual(to_bytes([0, 255]), b"\x00\xff")
        self.assertIsNone(try_decode([300]))
        self.assertEqual(try_decode([65]), "A")

    def test_binary_codec_is_an_encoding_error(self) -> None:
        for codec in ("hex", "base64", "unknown-codec"):
            with self.subTest(codec=codec):
                with self.assertRaises(EncodingError) as ctx:
                    decode([65], encoding=codec)
                self.assertIsInstance(ctx.exception.__cause__, LookupError)

    def test_non_integer_values_rejected(self) -> None:
        with self.assertRaises(EncodingError) as ctx:
            to_bytes([72, 65.7])
        self.assertEqual(ctx.exception.position, 1)
        with self.assertRaises(EncodingError):
            decode(["A"])


if __name__ == "__main__":
    unittest.main()
