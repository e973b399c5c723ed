"""
Recommendation engine: turns a task catalog plus a metrics snapshot into a
short, deterministic list of ranked wellness nudges with rationales.

Modules
-------
scorer      : ScoringWeights + TaskScore dataclasses, calculate_score() and
              the per-component helpers; pure functions, no state.
ranker      : apply_substitutions() (micro swaps), score_tasks(), rank() and
              relax_time_gates() backfill.
recommender : Recommender, which owns the catalog, daily bookkeeping and
              the get_recommendations() selection flow.
"""
