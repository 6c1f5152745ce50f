"""Referral commissions, daily payouts and wallet operations."""
