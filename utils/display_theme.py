# -*- coding: utf-8 -*-
"""
Console theme for tracker output and balance status colors
"""

from colorama import Fore, Style


class TrackerTheme:
    """Colors and symbols shared by the log helpers and the CLI tables."""

    def __init__(self):
        self.PRIMARY = Fore.WHITE + Style.BRIGHT
        self.ACCENT = Fore.CYAN + Style.BRIGHT
        self.SUCCESS = Fore.GREEN + Style.BRIGHT
        self.ERROR = Fore.RED + Style.BRIGHT
        self.WARNING = Fore.YELLOW + Style.BRIGHT
        self.INFO = Fore.BLUE + Style.BRIGHT
        self.TAG = Fore.MAGENTA
        self.SUBTLE = Style.DIM
        self.RESET = Style.RESET_ALL

        self.CHECKMARK = "✓"
        self.CROSS = "✗"
        self.WARNING_SYMBOL = "⚠"
        self.INFO_SYMBOL = "ℹ"

        # Balance status -> color used in history and lookup tables
        self.STATUS_COLORS = {
            "success": self.SUCCESS,
            "temporary_error": self.WARNING,
            "unavailable": self.ERROR,
        }

    def status_color(self, status: str) -> str:
        return self.STATUS_COLORS.get(status, self.SUBTLE)


theme = TrackerTheme()
