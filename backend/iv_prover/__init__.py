"""Daily Uniswap V3 implied-volatility proofs via an external prover and gateway."""
