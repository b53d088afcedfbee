"""Referral code and promo link registries.

Admins create short shareable codes; every tracked visit carrying a code
bumps that code's click counter.
"""

from insights.referral.models import PromoLink, ReferralCode

__all__ = ["PromoLink", "ReferralCode"]
