"""Gold weight variance between the initial and the final submitted weight."""
from dataclasses import dataclass, asdict

DEFAULT_VARIANCE_THRESHOLD = 5.0


@dataclass(frozen=True)
class WeightVariance:
    initial_weight: float
    final_weight: float
    difference: float  # final - initial, grams
    percentage_variance: float  # absolute, rounded to 2 decimals
    is_high_variance: bool
    is_weight_gain: bool
    alert_threshold: float

    def to_dict(self):
        return asdict(self)


def calculate_weight_variance(initial_weight: float, final_weight: float,
                              threshold: float = DEFAULT_VARIANCE_THRESHOLD) -> WeightVariance:
    """Compare final against initial weight.

    The threshold test uses the unrounded percentage. An initial weight of
    zero or less yields a variance of 0 here; submission validation rejects
    such weights before this is used to gate anything.
    """
    difference = final_weight - initial_weight
    if initial_weight > 0:
        percentage = abs((initial_weight - final_weight) / initial_weight * 100)
    else:
        percentage = 0.0
    return WeightVariance(
        initial_weight=initial_weight,
        final_weight=final_weight,
        difference=round(difference, 3),
        percentage_variance=round(percentage, 2),
        is_high_variance=percentage > threshold,
        is_weight_gain=final_weight > initial_weight,
        alert_threshold=threshold,
    )
