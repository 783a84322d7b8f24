from assist_core.streaming.decoder import LineDecoder, decode_stream, parse_line, split_lines

__all__ = ["LineDecoder", "decode_stream", "parse_line", "split_lines"]
