"""Writes the report document to the operator's chosen location."""

import os
import tempfile
import webbrowser
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Optional

from logger import RunLog
from orchestrator.confirmation_gate import ConfirmationGate


class PersistFailure(Exception):
    """The report could not be written to the chosen location."""

    def __init__(self, path: str, message: str):
        self.path = path
        super().__init__(f"Could not write report to '{path}': {message}")


class PersistFallbackFailure(PersistFailure):
    """The report could not be written to the fallback location either."""
    pass


class SaveStatus(Enum):
    SAVED = "saved"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class SaveResult:
    """Where (and whether) the report ended up."""

    status: SaveStatus
    path: Optional[str] = None
    used_fallback: bool = False


def prompt_for_report_path(
    suggested_path: str,
    input_func: Callable[[str], str] = input
) -> Optional[str]:
    """
    Line-based destination chooser.

    Enter accepts the suggested path; "skip" (or "cancel") declines saving.

    Returns:
        Chosen path, or None when the operator cancels
    """
    answer = input_func(
        f"Save report to [{suggested_path}] (Enter to accept, 'skip' to cancel): "
    ).strip()
    if answer.lower() in ('skip', 'cancel'):
        return None
    if not answer:
        return suggested_path
    path = Path(answer).expanduser()
    if path.is_dir():
        path = path / Path(suggested_path).name
    return str(path)


class ReportPersister:
    """Saves the report once, with a single fallback to a fixed location."""

    def __init__(
        self,
        run_log: RunLog,
        chooser: Callable[[str], Optional[str]] = prompt_for_report_path,
        output_directory: str = '.',
        fallback_directory: Optional[str] = None,
        open_gate: Optional[ConfirmationGate] = None,
        opener: Callable[[str], bool] = webbrowser.open
    ):
        """
        Args:
            run_log: Run log shared by every stage
            chooser: Given a suggested path, returns the chosen path or None to skip
            output_directory: Directory of the suggested path
            fallback_directory: Fixed directory used when the chosen path fails
                (defaults to the system temp directory)
            open_gate: When given, the operator is asked whether to open the saved report
            opener: Opens a URI in the default viewer, returning False on failure
        """
        self.run_log = run_log
        self.chooser = chooser
        self.output_directory = output_directory
        self.fallback_directory = fallback_directory or tempfile.gettempdir()
        self.open_gate = open_gate
        self.opener = opener

    def save(self, document: str, filename: str) -> SaveResult:
        """
        Save the document, falling back once to the fallback directory.

        Args:
            document: Report content
            filename: Suggested file name

        Returns:
            SAVED with the final path, or SKIPPED when the operator cancels

        Raises:
            PersistFallbackFailure: If both the chosen and the fallback writes fail
        """
        suggested = os.path.join(self.output_directory, filename)
        chosen = self.chooser(suggested)
        if not chosen:
            self.run_log.info("Report save skipped by operator")
            return SaveResult(status=SaveStatus.SKIPPED)
        if os.path.isdir(chosen):
            chosen = os.path.join(chosen, filename)

        try:
            self._write(chosen, document)
            result = SaveResult(status=SaveStatus.SAVED, path=chosen)
        except PersistFailure as e:
            self.run_log.warning(f"{str(e)}; falling back to {self.fallback_directory}")
            fallback = os.path.join(self.fallback_directory, os.path.basename(chosen) or filename)
            try:
                self._write(fallback, document)
            except PersistFailure as fallback_error:
                raise PersistFallbackFailure(fallback, str(fallback_error.__cause__)) from fallback_error
            result = SaveResult(status=SaveStatus.SAVED, path=fallback, used_fallback=True)

        self.run_log.success(f"Report saved to {result.path}")
        self._offer_open(result.path)
        return result

    def _write(self, path: str, document: str) -> None:
        try:
            directory = os.path.dirname(os.path.abspath(path))
            os.makedirs(directory, exist_ok=True)
            with open(path, 'w', encoding='utf-8') as f:
                f.write(document)
        except OSError as e:
            raise PersistFailure(path, str(e)) from e

    def _offer_open(self, path: str) -> None:
        """Ask to open the saved report; failures here are only warnings."""
        if self.open_gate is None:
            return
        try:
            if not self.open_gate.confirm("Open the report now?"):
                return
        except EOFError:
            self.run_log.warning("Could not open report: no operator input available")
            return
        try:
            opened = self.opener(Path(path).resolve().as_uri())
        except Exception as e:
            self.run_log.warning(f"Could not open report: {str(e)}")
            return
        if not opened:
            self.run_log.warning("Could not open report: no viewer available")


__all__ = [
    'ReportPersister',
    'SaveResult',
    'SaveStatus',
    'PersistFailure',
    'PersistFallbackFailure',
    'prompt_for_report_path'
]
