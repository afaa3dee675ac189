from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

from contact_distributor.services.progress import ProgressTracker


def test_progress_disabled_without_tty():
    with patch("contact_distributor.services.progress.is_tty_enabled", return_value=False):
        with ProgressTracker(3) as progress:
            progress.start_file(Path("a.csv"))
            progress.finish_file(accepted=1, rejected=0, failed=0)
            assert progress.pbar is None
            assert progress.current_file == 1


def test_progress_bar_counts_files_on_tty():
    with patch("contact_distributor.services.progress.is_tty_enabled", return_value=True):
        progress = ProgressTracker(2, description="Distributing")
        assert progress.pbar is not None
        progress.start_file(Path("a.csv"))
        assert "a.csv" in progress.pbar.desc
        progress.finish_file(accepted=5, rejected=1, failed=0)
        assert progress.pbar.n == 1
        assert progress.pbar.desc.startswith("Distributing")
        progress.close()
        assert progress.pbar is None


def test_progress_not_created_for_empty_batch():
    with patch("contact_distributor.services.progress.is_tty_enabled", return_value=True):
        assert ProgressTracker(0).pbar is None
