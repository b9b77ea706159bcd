from allocprep.insights.advisor import optimize_rules, predict_resource_needs
from allocprep.insights.generator import InsightGenerator, generate_insights
from allocprep.insights.search import search_entities

__all__ = [
    "InsightGenerator",
    "generate_insights",
    "optimize_rules",
    "predict_resource_needs",
    "search_entities",
]
