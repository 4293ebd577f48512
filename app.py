import logging
import os
from datetime import timedelta

import click
from flask import Flask, current_app, flash, redirect, render_template, request, url_for
from flask_wtf.csrf import CSRFProtect

from config import Config
from exceptions import (
    AlreadyReturnedError,
    BorrowLimitError,
    ConflictError,
    ExtensionLimitError,
    LibraryError,
    NotFoundError,
    OutOfStockError,
    OverdueBlockError,
    SuspendedError,
    ValidationError,
)
from forms import BookForm, CopiesForm, MemberForm
from members import MemberRegistry
from models import Rental, Role, db
from rentals import RentalEngine, RentalPolicy
from repositories import SqlBookRepository, SqlMemberRepository, SqlRentalRepository, sql_transaction
from standing import is_suspended

# Folder settings
BASE_DIR = os.path.dirname(os.path.abspath(__file__))

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

ERROR_STATUS = {
    ValidationError: 400,
    NotFoundError: 404,
    ConflictError: 409,
    OutOfStockError: 409,
    AlreadyReturnedError: 409,
    BorrowLimitError: 422,
    OverdueBlockError: 422,
    ExtensionLimitError: 422,
    SuspendedError: 403,
}

logger = logging.getLogger(__name__)

csrf = CSRFProtect()


def create_app(config_object=Config):
    app = Flask(
        __name__,
        template_folder=os.path.join(BASE_DIR, "templates"),
        static_folder=os.path.join(BASE_DIR, "static"),
    )
    app.config.from_object(config_object)
    logging.basicConfig(level=app.config.get("LOG_LEVEL", "INFO"), format=LOG_FORMAT)

    db.init_app(app)
    csrf.init_app(app)

    member_repo = SqlMemberRepository()
    app.extensions["rental_engine"] = RentalEngine(
        SqlBookRepository(),
        member_repo,
        SqlRentalRepository(),
        policy=RentalPolicy.from_config(app.config),
        transaction=sql_transaction,
    )
    app.extensions["member_registry"] = MemberRegistry(member_repo, transaction=sql_transaction)

    # Auto-create DB tables
    with app.app_context():
        db.create_all()

    register_routes(app)
    register_commands(app)
    app.register_error_handler(LibraryError, handle_library_error)
    logger.debug("App created | db=%s", app.config["SQLALCHEMY_DATABASE_URI"])
    return app


def engine() -> RentalEngine:
    return current_app.extensions["rental_engine"]


def registry() -> MemberRegistry:
    return current_app.extensions["member_registry"]


def handle_library_error(e):
    status = ERROR_STATUS.get(type(e), 400)
    logger.info("Request rejected | %s: %s", type(e).__name__, e)
    return render_template("error.html", message=str(e)), status


def _form_int(name):
    value = request.form.get(name, type=int)
    if value is None:
        raise ValidationError(f"{name} must be a number.")
    return value


def _back_to_member(member_id):
    return redirect(url_for("member_rentals", id=member_id))


def register_routes(app):

    # ------------------------------------------------------
    # HOME
    # ------------------------------------------------------

    @app.route("/")
    def index():
        return render_template(
            "index.html",
            book_count=len(engine().inventory.list_books()),
            member_count=len(registry().list_members()),
        )

    # ------------------------------------------------------
    # BOOKS
    # ------------------------------------------------------

    @app.route("/books")
    def books():
        q = request.args.get("q", "")
        results = engine().inventory.search(q)
        return render_template("books.html", books=results, q=q, copies_form=CopiesForm())

    @app.route("/books/add", methods=["GET", "POST"])
    def add_book():
        form = BookForm()
        if form.validate_on_submit():
            try:
                book = engine().inventory.register(
                    form.isbn.data, form.title.data, form.author.data, form.total_copies.data
                )
            except (ValidationError, ConflictError) as e:
                flash(str(e), "error")
            else:
                flash(f'Book "{book.title}" registered.', "success")
                return redirect(url_for("books"))

        return render_template("add_book.html", form=form)

    @app.route("/books/<int:id>/copies", methods=["POST"])
    def book_copies(id):
        form = CopiesForm()
        if not form.validate_on_submit():
            flash("Enter a positive number of copies.", "error")
            return redirect(url_for("books"))
        inventory = engine().inventory
        try:
            if form.action.data == "add":
                book = inventory.add_copies(id, form.count.data)
            else:
                book = inventory.remove_copies(id, form.count.data)
        except (OutOfStockError, ValidationError) as e:
            flash(str(e), "error")
        else:
            flash(f'"{book.title}" now has {book.total_copies} copies.', "success")
        return redirect(url_for("books"))

    # ------------------------------------------------------
    # MEMBERS
    # ------------------------------------------------------

    @app.route("/members")
    def members():
        today = engine().clock()
        results = registry().list_members()
        suspended = {m.id for m in results if is_suspended(m, today)}
        return render_template("members.html", members=results, suspended=suspended)

    @app.route("/members/add", methods=["GET", "POST"])
    def add_member():
        form = MemberForm()
        if form.validate_on_submit():
            try:
                m = registry().sign_up(
                    form.name.data, form.email.data, form.password.data, Role(form.role.data)
                )
            except (ValidationError, ConflictError) as e:
                flash(str(e), "error")
            else:
                flash(f"Member {m.name} signed up.", "success")
                return redirect(url_for("members"))

        return render_template("add_member.html", form=form)

    @app.route("/members/<int:id>/rentals")
    def member_rentals(id):
        member = registry().get(id)
        eng = engine()
        today = eng.clock()
        rentals = eng.rentals_for(member)
        titles = {b.id: b.title for b in eng.inventory.list_books()}
        return render_template(
            "rentals.html",
            member=member,
            rentals=rentals,
            titles=titles,
            today=today,
            suspended=is_suspended(member, today),
        )

    @app.route("/members/<int:id>/check-overdue", methods=["POST"])
    def check_overdue(id):
        member = registry().get(id)
        days = engine().check_overdue_and_apply_suspension(member)
        if days:
            flash(f"{member.name} suspended for {days} more day(s).", "warning")
        else:
            flash(f"{member.name} has no unpenalized overdue rentals.", "success")
        return _back_to_member(id)

    # ------------------------------------------------------
    # RENT BOOK
    # ------------------------------------------------------

    @app.route("/rent", methods=["GET", "POST"])
    def rent():
        if request.method == "POST":
            member = registry().get(_form_int("member_id"))
            book_id = _form_int("book_id")
            try:
                rental = engine().rent(book_id, member)
            except (
                SuspendedError,
                OverdueBlockError,
                BorrowLimitError,
                OutOfStockError,
                NotFoundError,
            ) as e:
                flash(str(e), "error")
            else:
                flash(f"Rented until {rental.due_at}.", "success")
            return _back_to_member(member.id)

        return render_template(
            "rent.html",
            members=registry().list_members(),
            books=engine().inventory.list_available(),
        )

    # ------------------------------------------------------
    # RETURN / EXTEND
    # ------------------------------------------------------

    @app.route("/rentals/<int:id>/return", methods=["POST"])
    def return_rental(id):
        eng = engine()
        rental = eng.get_rental(id)
        try:
            eng.return_book(id)
        except AlreadyReturnedError as e:
            flash(str(e), "error")
        else:
            flash("Book returned.", "success")
        return _back_to_member(rental.member_id)

    @app.route("/rentals/<int:id>/extend", methods=["POST"])
    def extend_rental(id):
        eng = engine()
        rental = eng.get_rental(id)
        try:
            eng.extend_rental(id)
        except (OverdueBlockError, SuspendedError, ExtensionLimitError, AlreadyReturnedError) as e:
            flash(str(e), "error")
        else:
            flash(f"Extended until {rental.due_at}.", "success")
        return _back_to_member(rental.member_id)


def register_commands(app):
    @app.cli.command("init-db")
    def init_db():
        """Create all tables."""
        db.create_all()
        click.echo("Database ready.")

    @app.cli.command("seed")
    def seed():
        """Load sample members and books, with one overdue rental."""
        eng = engine()
        reg = registry()
        today = eng.clock()
        with sql_transaction():
            reg.sign_up("Wonwoo", "wonwoo@test.com", "1234")
            reg.sign_up("Taeyoung", "taeyoung@test.com", "1234")
            reg.sign_up("Admin", "admin@admin.com", "1234", Role.ADMIN)
            late = reg.sign_up("Late Reader", "overdue@test.com", "1234")

            eng.inventory.register("978-0-13-235088-4", "Clean Code", "Robert C. Martin", 5)
            eng.inventory.register("978-0-201-63361-0", "Design Patterns", "Erich Gamma", 2)
            eng.inventory.register("978-0-201-48567-7", "Refactoring", "Martin Fowler", 2)
            book = eng.inventory.register("978-0-13-468599-1", "Effective Java", "Joshua Bloch", 1)

            rented_at = today - timedelta(days=20)
            eng.inventory.decrement_available(book.id)
            eng.rentals.save(
                Rental(
                    book_id=book.id,
                    member_id=late.id,
                    rented_at=rented_at,
                    due_at=rented_at + timedelta(days=eng.policy.loan_days),
                )
            )
        click.echo("Seeded 4 members and 4 books.")

    @app.cli.command("sweep-overdue")
    def sweep_overdue():
        """Suspend members for overdue days not yet penalized."""
        results = engine().sweep_overdue()
        for member_id, days in results.items():
            click.echo(f"member {member_id}: +{days} day(s)")
        click.echo(f"{len(results)} member(s) penalized.")


# ------------------------------------------------------
# RUN SERVER
# ------------------------------------------------------

if __name__ == "__main__":
    create_app().run(debug=True)
