import logging

from flask import render_template, redirect, url_for, flash, request
from flask_login import login_user, logout_user, login_required, current_user
from . import auth_bp
from .forms import LoginForm
from ..models import User

logger = logging.getLogger(__name__)

def _safe_next(next_url):
    # only relative paths on this host
    if next_url and next_url.startswith("/") and not next_url.startswith("//"):
        return next_url
    return None

@auth_bp.get("/login")
def login():
    if current_user.is_authenticated:
        return redirect(_safe_next(request.args.get("next")) or url_for("setup.index"))

    form = LoginForm()
    return render_template("auth/login.html", form=form)

@auth_bp.post("/login")
def login_post():
    if current_user.is_authenticated:
        return redirect(_safe_next(request.args.get("next")) or url_for("setup.index"))

    form = LoginForm()
    if not form.validate_on_submit():
        return render_template("auth/login.html", form=form), 400

    user = User.query.filter_by(email=form.email.data.lower().strip()).first()
    if not user or not user.check_password(form.password.data):
        flash("Invalid email or password.", "danger")
        logger.info("Failed login for %s", form.email.data)
        return render_template("auth/login.html", form=form), 401

    if not user.is_active:
        flash("Account is disabled. Contact admin.", "danger")
        return render_template("auth/login.html", form=form), 403

    login_user(user)
    return redirect(_safe_next(request.args.get("next")) or url_for("setup.index"))

@auth_bp.post("/logout")
@login_required
def logout():
    logout_user()
    flash("Logged out.", "info")
    return redirect(url_for("auth.login"))
