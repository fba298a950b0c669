"""
TrustScan analytics engine.

Classifies a subject, aggregates on-chain and off-chain evidence, then runs the
risk rule engine and the trust score calculator over one evidence bundle.
Modules: classifier, holder_analyzer, metadata_waterfall, risk_engine,
trust_engine, analytics_pipeline.
"""

from backend_trustscan.analytics.analytics_pipeline import analyze_subject, run_analysis
from backend_trustscan.analytics.risk_engine import evaluate
from backend_trustscan.analytics.trust_engine import score

__all__ = [
    "analyze_subject",
    "run_analysis",
    "evaluate",
    "score",
]
