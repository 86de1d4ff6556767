"""Sample-level transforms over ``(frames, channels)`` float arrays."""

import numpy as np


def frame_energies(samples: np.ndarray, frame_samples: int) -> np.ndarray:
    """Mean absolute amplitude of each frame, averaged over channels.

    A trailing partial frame is zero-padded, so its energy is divided by the
    full frame length.
    """
    if frame_samples <= 0:
        raise ValueError("frame_samples must be positive")
    frames = samples.shape[0]
    if frames == 0:
        return np.zeros(0, dtype=np.float64)
    count = -(-frames // frame_samples)
    padded = np.zeros((count * frame_samples, samples.shape[1]), dtype=np.float64)
    padded[:frames] = np.abs(samples)
    per_frame = padded.reshape(count, frame_samples, samples.shape[1])
    return per_frame.mean(axis=(1, 2))


def remove_silence(
    samples: np.ndarray,
    threshold: float = 0.01,
    frame_samples: int = 1024,
) -> np.ndarray:
    """Drop every frame whose energy does not exceed ``threshold``."""
    energies = frame_energies(samples, frame_samples)
    keep = np.repeat(energies > threshold, frame_samples)[: samples.shape[0]]
    return samples[keep]


def _butterworth_gain(freqs: np.ndarray, cutoff: float, order: int, highpass: bool) -> np.ndarray:
    with np.errstate(divide="ignore", over="ignore"):
        ratio = cutoff / freqs if highpass else freqs / cutoff
        return 1.0 / np.sqrt(1.0 + ratio ** (2 * order))


def band_pass(
    samples: np.ndarray,
    sample_rate: int,
    low_hz: float = 150.0,
    high_hz: float = 1000.0,
    order: int = 2,
) -> np.ndarray:
    """Cascade a high-pass at ``low_hz`` with a low-pass at ``high_hz``.

    Filtering is applied as Butterworth magnitude responses on the spectrum of
    each channel.
    """
    if not 0 < low_hz < high_hz:
        raise ValueError(f"Invalid pass band {low_hz}-{high_hz} Hz")
    frames = samples.shape[0]
    if frames == 0:
        return samples.copy()
    spectrum = np.fft.rfft(samples, axis=0)
    freqs = np.fft.rfftfreq(frames, d=1.0 / sample_rate)
    gain = _butterworth_gain(freqs, low_hz, order, highpass=True)
    gain = gain * _butterworth_gain(freqs, high_hz, order, highpass=False)
    filtered = np.fft.irfft(spectrum * gain[:, np.newaxis], n=frames, axis=0)
    return filtered.astype(samples.dtype, copy=False)


def change_speed(samples: np.ndarray, factor: float) -> np.ndarray:
    """Linearly resample so playback is ``factor`` times faster."""
    if factor <= 0:
        raise ValueError(f"speed factor must be positive, got {factor}")
    if factor == 1.0:
        return samples.copy()
    frames = samples.shape[0]
    new_length = int(np.floor(frames / factor))
    if new_length == 0 or frames == 0:
        return np.zeros((0, samples.shape[1]), dtype=samples.dtype)
    positions = np.arange(new_length, dtype=np.float64) * factor
    index = np.floor(positions).astype(np.int64)
    fraction = (positions - index)[:, np.newaxis]
    following = np.minimum(index + 1, frames - 1)
    resampled = samples[index] * (1.0 - fraction) + samples[following] * fraction
    return resampled.astype(samples.dtype, copy=False)


def change_volume(samples: np.ndarray, factor: float) -> np.ndarray:
    if factor < 0:
        raise ValueError(f"volume factor must not be negative, got {factor}")
    return (samples * factor).astype(samples.dtype, copy=False)
