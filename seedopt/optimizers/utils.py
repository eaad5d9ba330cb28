import numpy as np


def print_color(message, color=None):
    colors = {
        "red": "\033[91m",
        "green": "\033[92m",
        "yellow": "\033[93m",
        "blue": "\033[94m",
        "magenta": "\033[95m",
        "cyan": "\033[96m",
    }
    print(
        f"{colors.get(color, '')}{message}\033[0m"
    )  # Default to no color if invalid color is provided


def format_array(value, limit=8):
    """Short printable form of a parameter tensor."""
    value = np.asarray(value)
    if value.size <= limit:
        return np.array2string(value, precision=4)
    flat = value.reshape(-1)[:limit]
    return f"{np.array2string(flat, precision=4)[:-1]} ...] shape={value.shape}"
