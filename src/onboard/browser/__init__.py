"""Browser automation layer (Playwright, async API).

``session`` owns the browser lifecycle, ``actions`` provides the paced
primitives, and ``navigation``, ``form``, ``modal`` and ``captcha`` build
the wizard-facing protocols on top of them.  Site-specific selector
lists live in ``data/selectors.json`` and are loaded by ``selectors``.
"""
