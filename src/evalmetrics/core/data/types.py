"""Raw signals handed to metric engines by the training loop."""

from collections.abc import Mapping
from enum import Enum
from typing import Any


class RawMetric(Enum):
    """Kind of raw signal a training loop produces per device and batch."""

    LOSS = "loss"
    PREDICTION = "prediction"
    LABEL = "label"


# One device's current minibatch: signal kind -> device buffer.
# Consumed once per accumulate call and never retained.
RawMetricMap = Mapping[RawMetric, Any]
