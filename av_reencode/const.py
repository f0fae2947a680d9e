DEFAULT_OUTPUT_FORMAT = "3gp"
DEFAULT_PIXEL_FORMAT = "yuv420p"
DEFAULT_INTERPOLATION = "BILINEAR"

EXIT_SUCCESS = 0
EXIT_FAILURE = 1

USAGE = "%(prog)s input_file output_file bitrate_kbps"
SUCCESS_MESSAGE = "Conversion completed successfully!"

# Pixel formats with 4:2:0 chroma subsampling need even frame dimensions.
SUBSAMPLED_PIXEL_FORMATS = frozenset(
    {
        "yuv420p",
        "yuvj420p",
        "nv12",
        "nv21",
        "yuv420p10le",
    }
)

# MPEG-4 Part 2 and H.263 store the time base denominator in 16 bits.
MAX_TIME_BASE_DENOMINATOR = 65535
# Encoder clock when the source clock is too fine and no frame rate is known.
FALLBACK_TIME_BASE_DENOMINATOR = 1000
