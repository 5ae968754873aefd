# common/orchestrator.py
# -*- coding: utf-8 -*-
"""
Centralized orchestrator for managing and executing sequences of tasks.
"""

import logging
from typing import Any, Callable, Dict, List, Optional

from common.progress import ProgressIndicator


class Orchestrator:
    """A centralized orchestrator to run a series of defined tasks."""

    def __init__(
        self,
        app_settings: Any,
        orchestrator_logger: Optional[logging.Logger] = None,
        progress: Optional[ProgressIndicator] = None,
    ):
        """
        Initializes the Orchestrator.

        Args:
            app_settings: The application settings object.
            orchestrator_logger: An optional logger instance.
            progress: Optional console progress indicator; a task's summary
                is announced on it before the task runs.
        """
        self.app_settings = app_settings
        self.logger = orchestrator_logger or logging.getLogger(__name__)
        self.progress = progress
        self.tasks: List[Dict[str, Any]] = []
        # Shared context for tasks to pass state between each other
        self.context: Dict[str, Any] = {}

    def add_task(
        self,
        name: str,
        func: Callable,
        args: Optional[List[Any]] = None,
        kwargs: Optional[Dict[str, Any]] = None,
        fatal: bool = True,
        summary: Optional[str] = None,
    ):
        """
        Adds a task to the execution list.

        Args:
            name: A human-readable name for the task.
            func: The function to execute for this task. It is called with
                `context` and `app_settings` keyword arguments.
            args: A list of positional arguments to pass to the function.
            kwargs: A dictionary of keyword arguments to pass to the function.
            fatal: If True, a failure in this task halts the orchestration
                and the error is re-raised to the caller.
            summary: Console line announcing the task, if any.
        """
        self.tasks.append({
            "name": name,
            "func": func,
            "args": args or [],
            "kwargs": kwargs or {},
            "fatal": fatal,
            "summary": summary,
        })
        self.logger.debug(f"Task '{name}' added to the queue.")

    def run(self) -> bool:
        """
        Executes all added tasks in sequence.

        Returns:
            True if every task succeeded, False if a non-fatal task failed.

        Raises:
            Exception: Whatever a fatal task raised, after it was logged.
        """
        self.logger.info("Orchestration started.")
        all_succeeded = True
        for i, task in enumerate(self.tasks):
            task_name = task["name"]
            self.logger.info(
                f"--- Stage {i + 1}: Running task '{task_name}' ---"
            )
            if self.progress is not None and task["summary"]:
                self.progress.start(task["summary"])

            try:
                # Pass the shared context to every function
                task["kwargs"]["context"] = self.context
                task["kwargs"]["app_settings"] = self.app_settings

                result = task["func"](*task["args"], **task["kwargs"])

                self.context[f"{task_name}_result"] = result

                self.logger.info(
                    f"✅ Task '{task_name}' completed successfully."
                )

            except Exception as e:
                if self.progress is not None:
                    self.progress.fail()
                self.logger.critical(
                    f"🔥 Task '{task_name}' failed: {e}", exc_info=True
                )
                if task.get("fatal", True):
                    self.logger.error(
                        "A fatal error occurred. Halting orchestration."
                    )
                    raise
                all_succeeded = False
                self.logger.warning(
                    f"Task '{task_name}' was non-fatal. Continuing orchestration."
                )

        if self.progress is not None:
            self.progress.stop()
        self.logger.info("✨ Orchestration finished.")
        return all_succeeded
