from allocprep.rules.classifier import KeywordRuleClassifier, RuleClassifier, build_rule
from allocprep.rules.recommender import recommend_rules

__all__ = ["RuleClassifier", "KeywordRuleClassifier", "build_rule", "recommend_rules"]
