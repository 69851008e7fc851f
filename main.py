# Save this file as: main.py

import sys
import argparse
from voicetype.audio.decoder import AudioDecoder
from voicetype.utils.logger import logger


def listen(args):
    from voicetype.pipeline.orchestrator import VoiceTyper

    pipeline = VoiceTyper(data_dir=args.data_dir)
    logger.info("Press ENTER to start recording, ENTER again to stop. Ctrl+C quits.")

    try:
        while True:
            input()
            if pipeline.session.is_recording:
                finalize = pipeline.release()
                if finalize is not None:
                    finalize.join()
                print()
            elif not pipeline.press():
                logger.warning("Still processing the previous recording")
    except (KeyboardInterrupt, EOFError):
        print("\n\nShutting down system...")
    finally:
        pipeline.stop()
        logger.info("Goodbye!")


def transcribe(args):
    from voicetype.pipeline.orchestrator import VoiceTyper

    pipeline = VoiceTyper(data_dir=args.data_dir)
    failed = 0
    try:
        for item in pipeline.transcribe_files(args.files):
            if item.error:
                failed += 1
                print(f"[{item.file_name}] ERROR: {item.error}")
            else:
                t = item.transcription
                print(f"[{item.file_name}] ({t.duration_seconds:.1f}s, {t.processing_time_ms}ms): {t.text}")
    finally:
        pipeline.stop()
    return 1 if failed else 0


def devices(args):
    from voicetype.audio.devices import list_input_devices

    try:
        found = list_input_devices()
    except ImportError:
        logger.error("PyAudio is not installed (pip install 'voicetype[mic]')")
        return 1

    print("\n--- Available Audio Input Devices ---")
    for d in found:
        marker = "*" if d["is_default"] else " "
        print(f"{marker} Index {d['index']}: {d['name']} ({d['default_sample_rate']} Hz)")
    return 0


def formats(args):
    print(", ".join(AudioDecoder.supported_formats()))
    return 0


def main():
    # 1. Parse Command Line Arguments
    parser = argparse.ArgumentParser(description="Offline push-to-talk dictation")
    parser.add_argument("--data-dir", type=str, default=None, help="Settings/history directory (default ~/.voicetype)")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("listen", help="Dictate from the microphone (ENTER toggles recording)").set_defaults(func=listen)

    p = sub.add_parser("transcribe", help="Transcribe audio files")
    p.add_argument("files", nargs="+", help="Audio files (wav, mp3, m4a, aac, flac, ogg, webm)")
    p.set_defaults(func=transcribe)

    sub.add_parser("devices", help="List microphones").set_defaults(func=devices)
    sub.add_parser("formats", help="List supported file formats").set_defaults(func=formats)

    args = parser.parse_args()
    sys.exit(args.func(args) or 0)


if __name__ == "__main__":
    main()
