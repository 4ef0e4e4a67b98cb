"""Retry policy for throttled Azure API calls"""

import time
from typing import Any, Callable, List, Tuple, Type

from azure.core.exceptions import AzureError, ClientAuthenticationError
from tenacity import (
    RetryError,
    Retrying,
    retry_if_exception_type,
    retry_if_not_exception_type,
    wait_exponential,
)
from tenacity.stop import stop_base

from ..core.exceptions import RetryBudgetExceededError
from ..core.models import ReportConfiguration
from .logger import setup_logger


class stop_after_total_delay(stop_base):
    """Stop once the time already spent sleeping between attempts exceeds a budget"""

    def __init__(self, max_total_delay: float):
        self.max_total_delay = max_total_delay

    def __call__(self, retry_state) -> bool:
        return retry_state.idle_for > self.max_total_delay


class RetryPolicy:
    """Growing-delay retry that aborts the run when its delay budget is spent

    The first wait is ``initial_delay`` seconds and each following wait is
    ``multiplier`` times the previous one. A failure seen after more than
    ``max_total_delay`` seconds of cumulative waiting raises
    RetryBudgetExceededError instead of retrying again.
    """

    def __init__(
        self,
        initial_delay: float = 10.0,
        multiplier: float = 1.5,
        max_total_delay: float = 600.0,
        retry_on: Tuple[Type[BaseException], ...] = (AzureError,),
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.initial_delay = initial_delay
        self.multiplier = multiplier
        self.max_total_delay = max_total_delay
        self.retry_on = retry_on
        self.sleep = sleep
        self.logger = setup_logger(self.__class__.__name__)

    @classmethod
    def from_config(cls, config: ReportConfiguration, **kwargs) -> "RetryPolicy":
        return cls(
            initial_delay=config.retry_initial_delay,
            multiplier=config.retry_multiplier,
            max_total_delay=config.retry_max_total_delay,
            **kwargs
        )

    def call(self, operation: str, func: Callable[..., Any], *args, **kwargs) -> Any:
        """Invoke ``func`` until it succeeds or the delay budget is exhausted"""

        delays: List[float] = []

        def _sleep(seconds: float) -> None:
            delays.append(seconds)
            self.sleep(seconds)

        def _log_retry(retry_state) -> None:
            exc = retry_state.outcome.exception()
            self.logger.warning(
                f"{operation} failed (attempt {retry_state.attempt_number}): {exc}; "
                f"retrying in {retry_state.next_action.sleep:.1f}s"
            )

        retrying = Retrying(
            retry=(
                retry_if_exception_type(self.retry_on)
                & retry_if_not_exception_type(ClientAuthenticationError)
            ),
            wait=wait_exponential(multiplier=self.initial_delay, exp_base=self.multiplier),
            stop=stop_after_total_delay(self.max_total_delay),
            sleep=_sleep,
            before_sleep=_log_retry,
        )

        try:
            return retrying(func, *args, **kwargs)
        except RetryError as e:
            last_attempt = e.last_attempt
            error = RetryBudgetExceededError(
                operation,
                total_delay=sum(delays),
                attempts=last_attempt.attempt_number,
                last_error=last_attempt.exception(),
            )
            self.logger.error(str(error))
            raise error from last_attempt.exception()
