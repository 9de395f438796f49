from dataclasses import dataclass


@dataclass
class BrowserConfig:
    """Limits and sizes used by the snapshot browser"""
    max_view_bytes: int = 1_000_000  # largest prefix of a file shown by the viewer
    max_view_lines: int = 40
    help_width: int = 60
    page_size: int = 20  # rows per PageUp/PageDown until the table knows its height

    def update_from_args(self, args) -> "BrowserConfig":
        """Update config from command line arguments"""
        return BrowserConfig(
            max_view_bytes=getattr(args, "max_view_bytes", None) or self.max_view_bytes,
            max_view_lines=getattr(args, "max_view_lines", None) or self.max_view_lines,
            help_width=self.help_width,
            page_size=self.page_size,
        )


# Default configuration instance
DEFAULT_CONFIG = BrowserConfig()
