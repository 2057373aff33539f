"""Bounded-concurrency task dispatch with multi-variant competition.

A batch of tasks runs on a thread pool gated by a counting semaphore. Each
task either makes one generation call or competes several variants (model
and sampling configurations) concurrently; a deterministic heuristic scores
the variants and the winner is written to the task's output path.
"""
