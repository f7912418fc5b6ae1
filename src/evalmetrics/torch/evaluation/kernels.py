"""ROC AUC kernels over flat (prediction, label) tensors.

Every kernel accepts optional ``*_out`` tensors of exactly the result
size so a caller can run the whole pipeline inside pre-allocated memory.
Without them, results are freshly allocated.

All arithmetic is float32. Division by the positive or negative count is
deliberately unguarded: a label set without positives or without
negatives produces NaN (or inf), which propagates to the AUC.
"""

import torch
from torch import Tensor

# Sorted neighbours closer than this belong to the same tie run.
TIE_TOLERANCE = 1e-32


def sort_descending(
    predictions: Tensor,
    labels: Tensor,
    *,
    predictions_out: Tensor | None = None,
    labels_out: Tensor | None = None,
    indices_out: Tensor | None = None,
) -> tuple[Tensor, Tensor]:
    """Key-value sort of (prediction, label) pairs by prediction, descending.

    Returns:
        Tuple of (sorted_predictions, labels_in_the_same_order).
    """
    if predictions_out is None:
        predictions_out = torch.empty_like(predictions)
    if labels_out is None:
        labels_out = torch.empty_like(labels)
    if indices_out is None:
        indices_out = torch.empty(predictions.numel(), dtype=torch.int64, device=predictions.device)

    torch.sort(predictions, descending=True, stable=True, out=(predictions_out, indices_out))
    torch.index_select(labels, 0, indices_out, out=labels_out)
    return predictions_out, labels_out


def flag_run_ends(
    sorted_predictions: Tensor,
    *,
    out: Tensor | None = None,
    diff_out: Tensor | None = None,
) -> Tensor:
    """Flag the last element of every run of tied predictions.

    The final element is always flagged, even when it ties with its
    predecessor.

    Args:
        sorted_predictions: Predictions sorted in descending order.
        out: Optional bool tensor of the same size.
        diff_out: Optional float32 scratch of size ``n - 1``.

    Returns:
        Bool tensor, True at run ends.
    """
    n = sorted_predictions.numel()
    if out is None:
        out = torch.empty(n, dtype=torch.bool, device=sorted_predictions.device)
    if n == 0:
        return out

    if n > 1:
        if diff_out is None:
            diff_out = torch.empty(n - 1, dtype=sorted_predictions.dtype, device=sorted_predictions.device)
        torch.sub(sorted_predictions[:-1], sorted_predictions[1:], out=diff_out)
        diff_out.abs_()
        torch.gt(diff_out, TIE_TOLERANCE, out=out[:-1])
    out[-1] = True
    return out


def compact_runs(
    sorted_labels: Tensor,
    flags: Tensor,
    *,
    cumulative_out: Tensor | None = None,
    slots_out: Tensor | None = None,
    positions_out: Tensor | None = None,
    true_positives_out: Tensor | None = None,
    ranks_out: Tensor | None = None,
) -> tuple[Tensor, Tensor]:
    """Collapse tie runs into single ROC points.

    A prefix sum over the labels gives the cumulative positive count at
    every position. A prefix sum over the flags assigns each run end its
    slot in the compacted sequence; scattering through those slots keeps
    the cumulative count and the 0-based rank of the last element of
    every run.

    Args:
        sorted_labels: Labels in descending-prediction order.
        flags: Output of :func:`flag_run_ends`.

    Returns:
        Tuple of (cumulative_positives, ranks), one entry per run.
    """
    n = sorted_labels.numel()
    device = sorted_labels.device
    if cumulative_out is None:
        cumulative_out = torch.empty(n, dtype=torch.float32, device=device)
    if slots_out is None:
        slots_out = torch.empty(n, dtype=torch.int64, device=device)
    if positions_out is None:
        positions_out = torch.empty(n, dtype=torch.int64, device=device)
    if true_positives_out is None:
        true_positives_out = torch.empty(n, dtype=torch.float32, device=device)
    if ranks_out is None:
        ranks_out = torch.empty(n, dtype=torch.int64, device=device)
    if n == 0:
        return true_positives_out, ranks_out

    torch.cumsum(sorted_labels, dim=0, out=cumulative_out)
    torch.cumsum(flags, dim=0, dtype=torch.int64, out=slots_out)
    num_unique = int(slots_out[-1])

    # Run ends map to slot (count - 1). Everything else lands on slot
    # num_unique, which is past the kept range and always < n when any
    # element is unflagged.
    slots_out.masked_fill_(~flags, num_unique + 1)
    slots_out.sub_(1)
    torch.arange(n, out=positions_out)

    true_positives_out.scatter_(0, slots_out, cumulative_out)
    ranks_out.scatter_(0, slots_out, positions_out)
    return true_positives_out[:num_unique], ranks_out[:num_unique]


def roc_rates(
    true_positives: Tensor,
    ranks: Tensor,
    num_elements: int,
    *,
    tpr_out: Tensor | None = None,
    fpr_out: Tensor | None = None,
) -> tuple[Tensor, Tensor]:
    """True and false positive rates at every compacted point.

    ``tpr_out`` may alias ``true_positives``; the false positive rates are
    derived first.

    Returns:
        Tuple of (tpr, fpr).
    """
    if fpr_out is None:
        fpr_out = torch.empty_like(true_positives)
    if tpr_out is None:
        tpr_out = torch.empty_like(true_positives)

    total_positives = true_positives[-1].clone()
    total_negatives = num_elements - total_positives

    # rank + 1 is the number of elements ranked at or above this point
    fpr_out.copy_(ranks)
    fpr_out.add_(1).sub_(true_positives).div_(total_negatives)
    torch.div(true_positives, total_positives, out=tpr_out)
    return tpr_out, fpr_out


def trapezoid_auc(fpr: Tensor, tpr: Tensor) -> Tensor:
    """Integrate the ROC curve, which starts at the origin.

    Returns:
        0-d float32 tensor.
    """
    area = torch.trapezoid(tpr, fpr)
    return area + fpr[0] * tpr[0] / 2


def roc_curve(predictions: Tensor, labels: Tensor) -> tuple[Tensor, Tensor]:
    """Compacted (fpr, tpr) points for a single tensor pair."""
    predictions = predictions.reshape(-1).to(torch.float32)
    labels = labels.reshape(-1).to(torch.float32)
    sorted_predictions, sorted_labels = sort_descending(predictions, labels)
    flags = flag_run_ends(sorted_predictions)
    true_positives, ranks = compact_runs(sorted_labels, flags)
    tpr, fpr = roc_rates(true_positives, ranks, predictions.numel())
    return fpr, tpr


def roc_auc(predictions: Tensor, labels: Tensor) -> float:
    """Exact ROC AUC for a single tensor pair.

    Returns NaN for empty input or a single-class label set.
    """
    if predictions.numel() == 0:
        return float("nan")
    fpr, tpr = roc_curve(predictions, labels)
    return trapezoid_auc(fpr, tpr).item()
