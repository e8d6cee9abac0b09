#!/usr/bin/env python3
"""
OpenAI API cost tracker.

Accumulates token usage and cost for the running process and logs a
warning when an optional budget is reached.
"""

import logging
from threading import Lock
from typing import Dict, Optional

logger = logging.getLogger(__name__)


class CostTracker:
    """Track OpenAI API token usage and cost per process."""

    # OpenAI pricing per 1M tokens
    # Note: Update these when OpenAI changes pricing
    PRICING = {
        'gpt-4o-mini': {
            'input': 0.15,
            'output': 0.60
        },
        'gpt-4o': {
            'input': 2.50,
            'output': 10.00
        },
        'gpt-4-turbo': {
            'input': 10.00,
            'output': 30.00
        },
        'gpt-4': {
            'input': 30.00,
            'output': 60.00
        },
        'gpt-3.5-turbo': {
            'input': 0.50,
            'output': 1.50
        }
    }

    DEFAULT_MODEL = 'gpt-4o-mini'

    def __init__(self, budget_usd: Optional[float] = None):
        """
        Initialize cost tracker.

        Args:
            budget_usd: Spend at which a warning is logged (None disables it)
        """
        self.budget_usd = budget_usd
        self.total_cost = 0.0
        self.prompt_tokens = 0
        self.completion_tokens = 0
        self.request_count = 0
        self.operation_costs: Dict[str, float] = {}
        self.budget_warning_logged = False
        self.lock = Lock()

    def calculate_cost(self, model: str, prompt_tokens: int, completion_tokens: int) -> float:
        """
        Cost in USD of a single request.

        Unknown models are priced as gpt-4o-mini.
        """
        pricing = self.PRICING.get(model)
        if pricing is None:
            logger.debug(f"No pricing for model '{model}', using {self.DEFAULT_MODEL} rates")
            pricing = self.PRICING[self.DEFAULT_MODEL]

        input_cost = (prompt_tokens / 1_000_000) * pricing['input']
        output_cost = (completion_tokens / 1_000_000) * pricing['output']
        return input_cost + output_cost

    def record_usage(
        self,
        operation: str,
        model: str,
        prompt_tokens: int,
        completion_tokens: int
    ) -> dict:
        """
        Record token usage of one request.

        Args:
            operation: Name of the calling operation (e.g. "text_to_table")
            model: Model that served the request
            prompt_tokens: Input tokens
            completion_tokens: Output tokens

        Returns:
            dict with the request cost and running totals
        """
        cost = self.calculate_cost(model, prompt_tokens, completion_tokens)

        with self.lock:
            self.total_cost += cost
            self.prompt_tokens += prompt_tokens
            self.completion_tokens += completion_tokens
            self.request_count += 1
            self.operation_costs[operation] = self.operation_costs.get(operation, 0.0) + cost

            result = {
                'request_cost': round(cost, 6),
                'total_cost': round(self.total_cost, 6),
                'total_tokens': self.prompt_tokens + self.completion_tokens,
                'request_count': self.request_count,
            }

            if (
                self.budget_usd is not None
                and self.total_cost >= self.budget_usd
                and not self.budget_warning_logged
            ):
                logger.warning(
                    f"OpenAI spend ${self.total_cost:.4f} reached budget ${self.budget_usd:.2f}"
                )
                self.budget_warning_logged = True

        return result

    def summary(self) -> dict:
        """Running totals."""
        with self.lock:
            return {
                'total_cost': round(self.total_cost, 6),
                'prompt_tokens': self.prompt_tokens,
                'completion_tokens': self.completion_tokens,
                'request_count': self.request_count,
                'operation_costs': dict(self.operation_costs),
            }
