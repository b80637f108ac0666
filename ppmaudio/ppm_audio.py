#!/usr/bin/env python3
"""
Flipnote Studio PPM audio tool.

Decodes one of the four embedded audio tracks (bgm, se1, se2, se3) of a PPM
animation to a WAV file, or encodes a WAV file to nibble-swapped PPM ADPCM.

Usage:
    python -m ppmaudio.ppm_audio -e audio.wav -o audio.adpcm
    python -m ppmaudio.ppm_audio -d flipnote.ppm -t bgm -o bgm.wav
    python -m ppmaudio.ppm_audio -i flipnote.ppm
"""

import argparse
import sys
import wave
from contextlib import contextmanager

from ppmaudio.adpcm import decode_track, encode_track
from ppmaudio.common.ppm import PPMReader, FormatError, TRACK_NAMES
from ppmaudio.pcm import PPM_AUDIO_FORMAT, read_wav, write_wav


class UsageError(ValueError):
    pass


class StepFailed(Exception):
    def __init__(self, action, cause):
        super().__init__(f"Could not {action}: {cause}")
        self.action = action
        self.cause = cause


@contextmanager
def step(message, action):
    """Print a progress line and tag any failure inside with the action that was running."""
    print(f"> {message}")
    try:
        yield
    except (FormatError, OSError, wave.Error, EOFError) as e:
        raise StepFailed(action, e) from e


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Encode WAV to PPM ADPCM or decode PPM audio tracks to WAV.")
    parser.add_argument("-e", "--encode", help="The WAV file to encode")
    parser.add_argument("-d", "--decode", help="The PPM to decode the audio of")
    parser.add_argument("-t", "--track", help="The track to decode (bgm, se1, se2, se3)")
    parser.add_argument("-i", "--info", help="Print the sound header of a PPM and exit")
    parser.add_argument("-o", "--output", help="The file to output to")
    return parser.parse_args(argv)


def validate_args(args):
    modes = [m for m in (args.encode, args.decode, args.info) if m]
    if not modes:
        raise UsageError("You must either specify the WAV file to encode to PPM ADPCM "
                         "or the PPM file to decode the specified track of, along with the output file.")
    if args.encode and args.decode:
        raise UsageError("You cannot encode a WAV file and decode a PPM audio track in the same command.")
    if len(modes) > 1:
        raise UsageError("--info cannot be combined with encoding or decoding.")
    if args.track and not args.decode:
        raise UsageError("You cannot specify a track unless decoding a PPM file.")
    if args.decode and not args.track:
        raise UsageError("You must specify a PPM audio track to decode.")
    if args.decode and args.track not in TRACK_NAMES:
        raise UsageError(f"Invalid PPM audio track {args.track!r}. Available tracks: {' | '.join(TRACK_NAMES)}")
    if (args.encode or args.decode) and not args.output:
        raise UsageError("You must specify the output file.")


def print_usage_examples(prog):
    print("Examples:")
    print(f"> {prog} -e audio.wav -o audio.adpcm")
    print(f"> {prog} -d flipnote.ppm -t bgm -o audio.wav")
    print(f"> {prog} -i flipnote.ppm")


def write_all(f, data):
    written = f.write(data)
    if written is not None and written != len(data):
        raise OSError(f"Short write: {written} of {len(data)} bytes")


def encode_wav(wav_path, output_path, fmt=PPM_AUDIO_FORMAT):
    with step("Reading PCM samples of specified WAV file", "read the specified WAV file"):
        samples = read_wav(wav_path, fmt)
    print(f"  {len(samples)} samples")

    print("> Encoding PCM to nibble-swapped ADPCM")
    encoded = encode_track(samples, fmt)

    with step("Writing encoded audio to output file", "write encoded ADPCM audio to output file"):
        with open(output_path, 'wb') as out:
            write_all(out, encoded)
    print(f"  {len(encoded)} bytes written to {output_path}")


def decode_ppm(ppm_path, track, output_path, fmt=PPM_AUDIO_FORMAT):
    with step("Opening specified PPM file", "open specified PPM file"):
        f = open(ppm_path, 'rb')

    with f:
        with step("Parsing PPM sound header", "parse the PPM sound header"):
            reader = PPMReader(f)
        span = reader.span(track)
        print(f"  {track}: offset 0x{span.offset:X}, {span.length} bytes")

        with step(f"Reading {track} track data", f"read the {track} track"):
            data = reader.read_track(track)

    print(f"> Decoding {track}")
    samples = decode_track(data, fmt)

    with step("Writing WAV to output file", "write WAV encoded audio"):
        write_wav(samples, output_path, fmt)
    print(f"  {len(samples)} samples written to {output_path}")


def show_info(ppm_path):
    with step("Opening specified PPM file", "open specified PPM file"):
        f = open(ppm_path, 'rb')

    with f:
        with step("Parsing PPM sound header", "parse the PPM sound header"):
            reader = PPMReader(f)
            flags = reader.sound_effect_flags()

    header = reader.header
    print(f"Animation data size: 0x{header.animation_size:X}")
    print(f"Audio data size:     0x{header.audio_size:X}")
    print(f"Frame count:         {header.frame_count}")
    print(f"Sound header offset: 0x{header.sound_header_offset:X}")
    print(f"Playback speed:      {header.playback_speed}")
    print(f"BGM speed:           {header.bgm_speed}")
    for i, name in enumerate(TRACK_NAMES):
        span = reader.sound_index[i]
        line = f"  {name}: offset 0x{span.offset:X}, {span.length} bytes"
        if i > 0:
            used = sum(1 for frame in flags if frame[i - 1])
            line += f", triggered on {used} frames"
        print(line)


def main(argv=None):
    print("> Parsing parameters")
    args = parse_args(argv)
    prog = sys.argv[0] if argv is None else "ppm-audio"

    try:
        validate_args(args)
    except UsageError as e:
        print(f"Error: {e}")
        print_usage_examples(prog)
        return 0

    try:
        if args.encode:
            encode_wav(args.encode, args.output)
        elif args.decode:
            decode_ppm(args.decode, args.track, args.output)
        else:
            show_info(args.info)
    except StepFailed as e:
        print(f"Error: Could not {e.action}.")
        print(f"Additional details: {e.cause}")
        return 1

    print("Done!")
    return 0


if __name__ == '__main__':
    sys.exit(main())
