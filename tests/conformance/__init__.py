"""
Conformance Test Suite

This suite defines the NORMATIVE behavior of the vault engine.
Any compliant implementation MUST pass these tests.

The tests are organized by invariant:
1. conservation.py - Token and share supply accounting
2. atomicity.py - All-or-nothing entry points, across nested vaults
3. reentrancy.py - No vault call runs inside another call on the same vault
4. round_trip.py - Previews match actuals; round trips never profit
5. fee_monotonicity.py - Fee formulas move the right way
6. high_water_mark.py - Performance fees only on new highs

These tests use hypothesis for property-based testing.
"""
