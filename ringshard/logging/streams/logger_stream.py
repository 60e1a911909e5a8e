import datetime
import io
import os
import pathlib
import sys
import threading
from typing import (
    Callable,
    Dict,
    TypeVar,
)

import msgspec

from ringshard.logging.config.logging_config import LoggingConfig
from ringshard.logging.config.stream_type import StreamType
from ringshard.logging.models import Entry, Log

T = TypeVar('T', bound=Entry)


class LoggerStream:
    def __init__(
        self,
        name: str | None = None,
        template: str | None = None,
        filename: str | None = None,
        directory: str | None = None,
        path: str | None = None,
    ) -> None:
        if name is None:
            name = "default"

        if path:
            filename, directory = _split_logfile_path(path)

        self._name = name
        self._default_template = template
        self._default_logfile = filename
        self._default_log_directory = directory

        self._files: Dict[str, io.BufferedWriter] = {}
        self._lock = threading.Lock()
        self._config = LoggingConfig()
        self._closed = False

    @property
    def name(self):
        return self._name

    @property
    def closed(self):
        return self._closed

    def log(
        self,
        entry: T,
        template: str | None = None,
        path: str | None = None,
        filter: Callable[[T], bool] | None = None,
    ):
        if self._closed:
            return

        filename: str | None = None
        directory: str | None = None

        if path:
            filename, directory = _split_logfile_path(path)

        if template is None:
            template = self._default_template

        if filename is None:
            filename = self._default_logfile

        if directory is None:
            directory = self._default_log_directory

        if filename or directory or self._config.directory:
            self._log_to_file(
                entry,
                filename=filename,
                directory=directory,
                filter=filter,
            )

        else:
            self._log(
                entry,
                template=template,
                filter=filter,
            )

    def _log(
        self,
        entry_or_log: T | Log[T],
        template: str | None = None,
        filter: Callable[[T], bool] | None = None,
    ):
        entry: Entry = None
        if isinstance(entry_or_log, Log):
            entry = entry_or_log.entry

        else:
            entry = entry_or_log

        if self._config.enabled(self._name, entry.level) is False:
            return

        if filter and filter(entry) is False:
            return

        if template is None:
            template = "{timestamp} - {level} - {thread_id} - {filename}:{function_name}.{line_number} - {message}"

        if isinstance(entry_or_log, Log):
            log_file = entry_or_log.filename
            line_number = entry_or_log.line_number
            function_name = entry_or_log.function_name

        else:
            log_file, line_number, function_name = self._find_caller()

        stream = sys.stdout if self._config.output == StreamType.STDOUT else sys.stderr

        try:
            line = entry.to_template(
                template,
                context={
                    "filename": log_file,
                    "function_name": function_name,
                    "line_number": line_number,
                    "thread_id": threading.get_native_id(),
                    "timestamp": datetime.datetime.now(datetime.UTC).isoformat(),
                },
            )

            with self._lock:
                stream.write(line + "\n")
                stream.flush()

        except Exception as err:
            self._report_error(entry, err, log_file, function_name, line_number)

    def _log_to_file(
        self,
        entry_or_log: T | Log[T],
        filename: str | None = None,
        directory: str | None = None,
        filter: Callable[[T], bool] | None = None,
    ):
        entry: Entry = None
        if isinstance(entry_or_log, Log):
            entry = entry_or_log.entry

        else:
            entry = entry_or_log

        if self._config.enabled(self._name, entry.level) is False:
            return

        if filter and filter(entry) is False:
            return

        if filename is None:
            filename = "logs.json"

        logfile_path = self._to_logfile_path(
            filename,
            directory=directory,
        )

        if isinstance(entry_or_log, Log):
            log = entry_or_log

        else:
            # Frame 2 is whoever called log().
            log = Log.from_frame(entry, sys._getframe(2))

        log_file = log.filename
        line_number = log.line_number
        function_name = log.function_name

        try:
            with self._lock:
                if self._files.get(logfile_path) is None or self._files[logfile_path].closed:
                    self._open_file(logfile_path)

                self._write_to_file(log, logfile_path)

        except Exception as err:
            self._report_error(entry, err, log_file, function_name, line_number)

    def _report_error(
        self,
        entry: Entry,
        err: Exception,
        log_file: str,
        function_name: str,
        line_number: int,
    ):
        error_template = "{timestamp} - {level} - {thread_id}.{filename}:{function_name}.{line_number} - {error}"

        if sys.stderr.closed is False:
            sys.stderr.write(
                entry.to_template(
                    error_template,
                    context={
                        "filename": log_file,
                        "function_name": function_name,
                        "line_number": line_number,
                        "error": str(err),
                        "thread_id": threading.get_native_id(),
                        "timestamp": datetime.datetime.now(datetime.UTC).isoformat(),
                    },
                ) + "\n"
            )

    def _open_file(
        self,
        logfile_path: str,
    ):
        resolved_path = pathlib.Path(logfile_path).absolute().resolve()
        logfile_directory = str(resolved_path.parent)
        path = str(resolved_path)

        if not os.path.exists(logfile_directory):
            os.makedirs(logfile_directory)

        if not os.path.exists(path):
            resolved_path.touch()

        self._files[logfile_path] = open(path, "ab+")

    def _write_to_file(
        self,
        log: Log,
        logfile_path: str,
    ):
        if (
            logfile := self._files.get(logfile_path)
        ) and (
            logfile.closed is False
        ):
            logfile.write(msgspec.json.encode(log) + b"\n")
            logfile.flush()

    def _to_logfile_path(
        self,
        filename: str,
        directory: str | None = None,
    ):
        filename_path = pathlib.Path(filename)

        assert (
            filename_path.suffix == ".json"
        ), "Err. - file must be JSON file for logs."

        if self._config.directory:
            directory = self._config.directory

        elif directory is None:
            directory = os.path.join(os.getcwd(), "logs")

        return os.path.join(directory, filename_path)

    def _find_caller(self):
        """
        Find the stack frame of the caller so that we can note the source
        file name, line number and function name.
        """
        frame = sys._getframe(3)
        code = frame.f_code

        return (
            code.co_filename,
            frame.f_lineno,
            code.co_name,
        )

    def read(
        self,
        filename: str | None = None,
        directory: str | None = None,
    ) -> list[Log]:
        if filename is None:
            filename = self._default_logfile or "logs.json"

        if directory is None:
            directory = self._default_log_directory

        logfile_path = self._to_logfile_path(filename, directory=directory)
        if not os.path.exists(logfile_path):
            return []

        decoder = msgspec.json.Decoder(Log)

        with self._lock:
            with open(logfile_path, "rb") as logfile:
                return [
                    decoder.decode(line)
                    for line in logfile.read().splitlines()
                    if line.strip()
                ]

    def close(self):
        with self._lock:
            for logfile in self._files.values():
                if logfile.closed is False:
                    logfile.close()

            self._files.clear()
            self._closed = True


def _split_logfile_path(path: str) -> tuple[str | None, str]:
    """Split a log path into (filename, directory). Paths without a suffix are directories."""
    logfile_path = pathlib.Path(path)

    if logfile_path.suffix:
        return logfile_path.name, str(logfile_path.parent.absolute())

    return None, str(logfile_path.absolute())
