"""
Text templates for correlation findings.

Cluster explanations and diversification recommendations are shown
verbatim in the UI, so the wording is kept stable here.
"""

CLUSTER_EXPLANATION_TEMPLATE: str = (
    "{size} strategies with {avg_pct:.0f}% average correlation - may fail together during stress"
)

# Diversification recommendations, keyed by the check that triggers them
RECOMMENDATION_TEMPLATES: dict[str, str] = {
    "empty": "Add active strategies to measure diversification",
    "few_archetypes": "Add strategies from different archetypes (trend, mean-revert, breakout)",
    "high_avg_correlation": (
        "High average correlation - consider adding uncorrelated or negatively "
        "correlated strategies"
    ),
    "dangerous_clusters": (
        "Dangerous correlation clusters detected - reduce position sizes or "
        "remove redundant strategies"
    ),
    "no_crisis_coverage": "Add volatility/crisis-alpha strategies for tail-risk protection",
    "small_fleet": "Expand portfolio to 5+ strategies for better diversification",
}


def format_cluster_explanation(size: int, avg_correlation: float) -> str:
    """Human-readable summary of one cluster."""
    return CLUSTER_EXPLANATION_TEMPLATE.format(size=size, avg_pct=avg_correlation * 100)
