'''
This module provides a logger class for handling console and file logging with verbosity control.
It includes methods for printing messages with different log levels, formatting titles,
measuring execution time and summarizing an eigensolver run.

@note If one wants to use file logging, the environment variable PYLOGFILE should be set to a non-zero value.
@note If one wants to disable colored output, the environment variable PYLOGCOLORS should be set to '0'.

-------------------------------------------------------
file        :   geneigs/common/flog.py
description :   Console and file logging with verbosity control for the eigensolvers.
-------------------------------------------------------
'''

__all__         = [
    "Logger",
    "Colors",
    "log_solver_summary",
    "get_global_logger"
]

import os
import re
import sys
import logging
import threading
from datetime import datetime
from typing import Optional, Dict, List

######################################################
#! PRINT THE OUTPUT WITH A GIVEN COLOR
######################################################

class Colors:
    """
    ANSI colors for console output.

    Attributes:
        black, red, green, yellow, blue (str):
            ANSI escape codes for the corresponding text color.
        white (str):
            ANSI escape code resetting the color to default.
    """

    black   = "\033[30m"
    red     = "\033[31m"
    green   = "\033[32m"
    yellow  = "\033[33m"
    blue    = "\033[34m"
    white   = "\033[0m"  # Reset / default color

    def __init__(self, color : str):
        self.color = color

    def __str__(self) -> str:
        mapping = {
            "black" : Colors.black,
            "red"   : Colors.red,
            "green" : Colors.green,
            "yellow": Colors.yellow,
            "blue"  : Colors.blue,
        }
        return mapping.get(self.color, Colors.white)

    def __repr__(self) -> str:
        return str(self)

    def __call__(self, text: str) -> str:
        """
        Apply the color to the given text.
        """
        return f"{self}{text}{Colors.white}"

# Regex for ANSI colour codes (CSI sequences: ESC [ ... m)
_ansi_escape = re.compile(r'\x1b\[[0-9;]*m')

class StripAnsiFormatter(logging.Formatter):
    ''' Formatter for file handlers, removes the color codes. '''
    def format(self, record):
        msg = super().format(record)
        return _ansi_escape.sub('', msg)

######################################################
#! PRINT THE OUTPUT WITH A GIVEN LEVEL
######################################################

ENV_LOGGER_FILE     = 'PYLOGFILE'
ENV_LOGGER_COLORS   = 'PYLOGCOLORS'
ENV_LOGGER_INFO     = 'GENEIGS_LOG_INFO'

class Logger:
    """
    Logger class for handling console and file logging with verbosity control.

    Messages are indented by ``lvl`` tabulators and prefixed with ``->`` so that
    nested phases of a computation (outer iteration, restart, expansion) read
    as a tree in the console.
    """

    LEVELS = {
        logging.DEBUG   : 'debug',
        logging.INFO    : 'info',
        logging.WARNING : 'warning',
        logging.ERROR   : 'error'
    }

    LEVELS_R = {v: k for k, v in LEVELS.items()}

    def __init__(self,
                name            : str           = "geneigs",
                logfile         : Optional[str] = None,
                lvl             : int           = logging.INFO,
                append_ts       : bool          = False,
                use_ts_in_cmd   : bool          = False):
        """
        Initialize the logger instance.

        Args:
            name (str):
                Name of the underlying ``logging`` logger.
            logfile (str):
                Name of the log file (without extension). Only used when PYLOGFILE is set.
            lvl (int | str):
                Logging level (default: logging.INFO), 'debug', 'info', ... also accepted.
            append_ts (bool):
                Whether to append a timestamp to the log file name (default: False).
            use_ts_in_cmd (bool):
                Whether to use a timestamp in console output (default: False).
        """
        self.now                = datetime.now()
        self.now_str            = self.now.strftime("%d_%m_%Y_%H-%M_%S")
        self.lvl                = Logger.LEVELS_R.get(lvl, logging.INFO) if isinstance(lvl, str) else lvl
        self.handler_added      = False
        self.use_console_ts     = use_ts_in_cmd
        self.has_colors         = sys.stdout.isatty() and os.environ.get(ENV_LOGGER_COLORS, '1') != '0'

        self.logger             = logging.getLogger(name or __name__)
        self.logger.setLevel(self.lvl)
        self.logger.propagate   = False

        console_fmt = '%(asctime)s [%(levelname)s] %(message)s' if use_ts_in_cmd else '[%(levelname)s] %(message)s'

        # each Logger owns exactly one console handler on its named logger
        for h in list(self.logger.handlers):
            self.logger.removeHandler(h)
            h.close()
        ch = logging.StreamHandler(sys.stdout)
        ch.setLevel(self.lvl)
        ch.setFormatter(logging.Formatter(console_fmt, datefmt="%d_%m_%Y_%H-%M_%S"))
        self.logger.addHandler(ch)

        if logfile is not None and os.environ.get(ENV_LOGGER_FILE, '0') != '0':
            self.logfile = (logfile.split('.log')[0] if logfile.endswith('.log') else f'{logfile}') if len(logfile) > 0 else self.now_str
            if append_ts:
                self.logfile += f'_{self.now_str}'
            self.configure("./log")
        else:
            self.logfile = self.now_str

    # --------------------------------------------------------------

    @staticmethod
    def colorize(txt: str, color: str):
        """
        Apply color to the given text (for console output).
        """
        if not color or color.lower() == 'white':
            return str(txt)
        return str(Colors(color)) + str(txt) + Colors.white

    # --------------------------------------------------------------

    def configure(self, directory: str):
        """
        Configure the logger to use a specific directory for log files.

        Args:
            directory (str): Path to the directory where log files will be stored.
        """
        base_name       = self.now_str if len(self.logfile) == 0 else self.logfile
        self.logfile    = os.path.join(directory, f'{base_name}.log')
        os.makedirs(directory, exist_ok=True)

        with open(self.logfile, 'w+') as f:
            f.write('--------------------------------------------------\n')
            f.write('geneigs solver log.\n')
            f.write(f'Log file created on {self.now_str}.\n')
            f.write(f'Log level set to: {self.LEVELS.get(self.lvl, "info")}.\n')
            f.write(f"Python version: {sys.version}\n")
            f.write(f"Current working directory: {os.getcwd()}\n")
            f.write('--------------------------------------------------\n')

        if not self.handler_added:
            self._f_handler = logging.FileHandler(self.logfile, encoding='utf-8')
            self._f_handler.setLevel(self.lvl)
            self._f_handler.setFormatter(StripAnsiFormatter('%(asctime)s [%(levelname)s] %(message)s', datefmt="%d_%m_%Y_%H-%M-%S"))
            self.logger.addHandler(self._f_handler)
            self.handler_added = True
            self.info(f"Log file created: {self.logfile}")

    # --------------------------------------------------------------

    @staticmethod
    def print_tab(lvl=0):
        """
        Generate indentation for message formatting.
        """
        return '\t' * lvl + ('->' if lvl > 0 else '')

    @staticmethod
    def print(msg: str, lvl=0):
        """
        Format a message with the indentation of level ``lvl``.
        """
        return f"{Logger.print_tab(lvl)}{msg}"

    # --------------------------------------------------------------

    def info(self, msg: str, lvl=0, verbose=True, color=None):
        """
        Log an informational message if verbosity is enabled.
        """
        if not verbose:
            return
        if color is not None and self.has_colors:
            msg = self.colorize(msg, color)
        self.logger.info(Logger.print(msg, lvl))

    def debug(self, msg: str, lvl=0, verbose=True, color=None):
        """
        Log a debug message if verbosity is enabled.
        """
        if not verbose:
            return
        if color is not None and self.has_colors:
            msg = self.colorize(msg, color)
        self.logger.debug(Logger.print(msg, lvl))

    def warning(self, msg: str, lvl=0, verbose=True, color='yellow'):
        """
        Log a warning message if verbosity is enabled.
        """
        if not verbose:
            return
        if self.has_colors:
            msg = self.colorize(msg, color)
        self.logger.warning(Logger.print(msg, lvl))

    def error(self, msg: str, lvl=0, verbose=True, color='red'):
        """
        Log an error message if verbosity is enabled.
        """
        if not verbose:
            return
        if self.has_colors:
            msg = self.colorize(msg, color)
        self.logger.error(Logger.print(msg, lvl))

    # --------------------------------------------------------------

    def title(self, tail: str, desired_size: int=50, fill: str = '=', lvl=0, verbose=True, color=None):
        """
        Create a formatted title with filler characters if verbosity is enabled.

        Args:
            tail (str):
                Text in the middle of the title.
            desired_size (int):
                Total width of the title.
            fill (str):
                Character used for filling.
        """
        if not verbose:
            return
        if len(tail) + 2 + lvl * 6 > desired_size:
            self.info(tail, lvl, verbose)
            return

        fill_size   = (desired_size - len(tail)) // (2 * len(fill))
        out         = (fill * fill_size) + f"{tail}" + (fill * fill_size)
        if len(out) < desired_size:
            out += fill[0] * (desired_size - len(out) - 1)
        self.info(out[:desired_size], lvl, verbose, color)

######################################################
#! SOLVER SUMMARY
######################################################

def log_solver_summary(
    logger          : Logger,
    stats           : Dict[str, object],
    title           : str = "Arnoldi Summary",
    key_col_width   : int = 18,
    val_col_width   : int = 14,
    lvl             : int = 0,
    extra_info      : Optional[List[str]] = None
):
    """
    Logs the statistics of a solver run in a tabular format.

    Parameters:
    logger:
        Logger instance to log the summary.
    stats:
        Dictionary mapping a quantity name (e.g. 'iterations', 'operations',
        'converged') to its value.
    title:
        Title for the summary table.
    key_col_width, val_col_width:
        Widths of the two columns.
    lvl:
        Base indentation level for the summary.
    extra_info:
        Optional list of strings to log above the table.
    """
    key_header      = "Quantity"
    val_header      = "Value"
    key_col_width   = max(key_col_width, len(key_header))
    val_col_width   = max(val_col_width, len(val_header))
    separator       = f"|{'-' * (key_col_width + 2)}|{'-' * (val_col_width + 2)}|"

    logger.title(f"{title}", 50, '#', lvl)
    for info in extra_info or []:
        logger.info(info, lvl=lvl + 1)

    logger.info(separator, lvl=lvl + 1)
    logger.info(f"| {key_header:<{key_col_width}} | {val_header:>{val_col_width}} |", lvl=lvl + 1)
    logger.info(separator, lvl=lvl + 1)
    for name, value in stats.items():
        logger.info(f"| {str(name):<{key_col_width}} | {str(value):>{val_col_width}} |", lvl=lvl + 1)
    logger.info(separator, lvl=lvl + 1)

######################################################

_G_LOGGER     = None
_G_LOGGER_PID = None
_G_LOCK       = threading.Lock()

def get_global_logger(**kwargs) -> Logger:
    """
    One Logger wrapper per process (PID), safe across threads/forks.

    Args:
        **kwargs: Arguments to pass to the Logger constructor.
        - name (str): Name of the logger (default: "geneigs").
        - lvl (int): Logging level (default: logging.INFO).
        - append_ts (bool): Whether to append timestamps to the log file (default: True).
        - use_ts_in_cmd (bool): Whether to show timestamps in the console (default: False).
        - logfile (str or None): Path to a logfile (default: None).

    Returns:
        Logger: The global logger instance.

    Example
    -------
        >>> logger = get_global_logger()
        >>> logger.info("Restarting with 4 shifts", lvl=1)
    """
    global  _G_LOGGER, _G_LOGGER_PID
    pid     = os.getpid()

    if _G_LOGGER is not None and _G_LOGGER_PID == pid:
        return _G_LOGGER

    with _G_LOCK:
        if _G_LOGGER is not None and _G_LOGGER_PID == pid:
            return _G_LOGGER

        logger = Logger(
            name            = kwargs.get("name",            "geneigs"),
            lvl             = kwargs.get("lvl",             logging.INFO),
            append_ts       = kwargs.get("append_ts",       True),
            use_ts_in_cmd   = kwargs.get("use_ts_in_cmd",   False),
            logfile         = kwargs.get("logfile",         None),
        )

        if os.environ.get(ENV_LOGGER_INFO, "0") != "0":
            logger.title("geneigs logger initialized!", 50, '#', 0)

        _G_LOGGER       = logger
        _G_LOGGER_PID   = pid
        return _G_LOGGER

# ---------------------------------------------------------------------
#! EOF
# ---------------------------------------------------------------------
