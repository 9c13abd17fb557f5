"""Pre-flight policy guard for storefront generation prompts.

Rules are evaluated in declaration order and the first rule with a matching
phrase wins. Phrases match case-insensitively, tolerate any run of whitespace
between words and are anchored on word boundaries, so "login   page" matches
"login page" while "loginpage" does not.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PolicyRule:
  """One platform-scope rule and the response shown when it triggers."""

  id: str
  category: str
  keywords: tuple[str, ...]
  message: str
  redirect: str | None = None


class PolicyViolationError(RuntimeError):
  """Raised when a prompt asks for functionality the platform does not allow."""

  def __init__(self, rule: PolicyRule) -> None:
    super().__init__(get_policy_violation_response(rule))
    self.rule = rule


POLICY_RULES: tuple[PolicyRule, ...] = (
  PolicyRule(
    id="auth_restriction",
    category="Security Policy",
    keywords=(
      "login page", "sign in page", "signin page", "signup page", "sign up page",
      "register page", "registration page", "password reset", "forgot password",
      "2fa", "two factor", "otp page", "authentication page", "logout page",
      "create login", "build login", "make login", "add login",
      "create signup", "build signup", "make signup", "add signup",
      "user authentication", "auth system", "login form", "signup form",
      "register form", "login modal", "signup modal",
    ),
    message="Authentication features are securely managed by the SellsPay platform. Login, signup and password pages are handled at the platform level to keep accounts secure and compliant.",
    redirect="Instead, I can help you create a stunning storefront, product showcase, or landing page!",
  ),
  PolicyRule(
    id="settings_restriction",
    category="Platform Scope",
    keywords=(
      "settings page", "user settings", "account settings", "profile settings",
      "edit profile page", "profile management", "change email", "update email",
      "billing page", "payment settings", "subscription settings", "account management",
      "user preferences", "notification settings", "privacy settings",
      "manage account", "delete account", "security settings",
    ),
    message="User settings, billing, and account management are handled by the SellsPay platform. Your storefront should focus on showcasing your products and converting visitors.",
    redirect="I can help you build beautiful product galleries, hero sections, or about pages instead!",
  ),
  PolicyRule(
    id="backend_restriction",
    category="Architecture Limit",
    keywords=(
      "create database", "database schema", "sql query", "backend api",
      "server setup", "admin panel", "admin dashboard", "cms system",
      "api endpoint", "rest api", "graphql", "webhook handler",
      "server-side", "backend logic", "database table",
    ),
    message="VibeCoder is designed for frontend storefront design. Backend infrastructure, databases, and admin panels are pre-provisioned by SellsPay.",
    redirect="Let me help you design an amazing product page or landing section!",
  ),
  PolicyRule(
    id="payment_restriction",
    category="Payment Policy",
    keywords=(
      "stripe key", "stripe api", "paypal client", "paypal api",
      "custom checkout", "payment gateway", "payment processor",
      "credit card form", "payment form", "checkout system",
      "integrate stripe", "integrate paypal", "cashapp", "venmo",
      "crypto payment", "bitcoin payment",
    ),
    message="All payments on SellsPay are processed through our secure, unified checkout system. Custom payment integrations aren't permitted, and your 'Buy Now' buttons automatically use the platform checkout.",
    redirect="I can help you design compelling CTAs and product cards!",
  ),
  PolicyRule(
    id="layout_restriction",
    category="Layout Policy",
    keywords=(
      "nav above hero", "navigation above hero", "navbar above hero", "menu above hero",
      "nav above the hero", "navigation above the hero", "navbar above the hero", "menu above the hero",
      "nav before hero", "navigation before hero", "navbar before the hero",
      "nav at the very top", "navbar at the very top", "navigation at the very top",
      "header above hero", "header above the hero",
    ),
    message="Store navigation always sits below the hero section so every storefront opens with its hero.",
    redirect="I can make the navigation sticky right under the hero, or restyle the hero itself!",
  ),
  PolicyRule(
    id="privilege_escalation",
    category="Platform Integrity",
    keywords=(
      "ignore previous instructions", "ignore all previous instructions", "ignore your instructions",
      "disregard previous instructions", "system prompt", "developer mode",
      "make me admin", "make me an admin", "grant me admin", "give me admin", "admin access",
      "admin privileges", "grant admin", "give me credits", "free credits", "unlimited credits",
      "add credits", "grant credits", "set my credits", "bypass payment", "bypass checkout",
      "free purchase", "free purchases", "skip payment",
    ),
    message="I can't change platform permissions, credits, or payment rules. Those are controlled by SellsPay and can't be granted through the storefront builder.",
    redirect="Tell me how you'd like your storefront to look and I'll design it!",
  ),
)


def _keyword_pattern(keyword: str) -> re.Pattern[str]:
  """Compile a phrase into a whitespace-tolerant, word-bounded pattern."""
  words = keyword.strip().lower().split()
  # Escape each word so configured phrases never act as live regex syntax.
  body = r"\s+".join(re.escape(word) for word in words)
  return re.compile(rf"\b{body}\b", re.IGNORECASE)


_COMPILED_RULES: tuple[tuple[PolicyRule, tuple[re.Pattern[str], ...]], ...] = tuple((rule, tuple(_keyword_pattern(keyword) for keyword in rule.keywords)) for rule in POLICY_RULES)


def check_policy_violation(prompt: str | None) -> PolicyRule | None:
  """Return the first rule the prompt violates, or None when it is allowed."""
  normalized = (prompt or "").lower()
  if not normalized.strip():
    return None

  for rule, patterns in _COMPILED_RULES:
    if any(pattern.search(normalized) for pattern in patterns):
      logger.info("Policy rule matched rule_id=%s category=%s", rule.id, rule.category)
      return rule

  return None


def get_policy_violation_response(rule: PolicyRule) -> str:
  """Compose the user-facing rejection text for a matched rule."""
  if rule.redirect:
    return f"{rule.message} {rule.redirect}"
  return rule.message
