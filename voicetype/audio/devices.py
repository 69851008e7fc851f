# Save this file as: voicetype/audio/devices.py

from typing import List, Optional


def list_input_devices() -> List[dict]:
    """Input-capable devices as {index, name, default_sample_rate, is_default}."""
    import pyaudio

    p = pyaudio.PyAudio()
    try:
        try:
            default_index: Optional[int] = p.get_default_input_device_info().get("index")
        except IOError:
            default_index = None

        devices = []
        for i in range(p.get_device_count()):
            info = p.get_device_info_by_index(i)
            if info['maxInputChannels'] > 0:
                devices.append({
                    "index": i,
                    "name": info['name'],
                    "default_sample_rate": int(info['defaultSampleRate']),
                    "is_default": i == default_index,
                })
        return devices
    finally:
        p.terminate()
