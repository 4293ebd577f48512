import logging
from contextlib import nullcontext

from exceptions import ConflictError, NotFoundError, OutOfStockError, ValidationError
from models import Book

logger = logging.getLogger(__name__)


def _require_text(value, label):
    if value is None or not str(value).strip():
        raise ValidationError(f"{label} is required.")
    return str(value).strip()


def _require_count(value, label, minimum):
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{label} must be an integer.")
    if value < minimum:
        raise ValidationError(f"{label} must be at least {minimum}.")
    return value


class BookInventory:
    """Total vs. available copies per title.

    Every stock change goes through here so that
    ``0 <= available_copies <= total_copies`` holds after each call.
    """

    def __init__(self, books, transaction=None):
        self.books = books
        self._transaction = transaction or nullcontext

    def register(self, isbn, title, author, total_copies):
        isbn = _require_text(isbn, "ISBN")
        title = _require_text(title, "Title")
        author = _require_text(author, "Author")
        total_copies = _require_count(total_copies, "Total copies", 0)

        with self._transaction():
            if self.books.find_by_isbn(isbn) is not None:
                raise ConflictError(f"A book with ISBN {isbn} already exists.")
            book = self.books.save(
                Book(
                    isbn=isbn,
                    title=title,
                    author=author,
                    total_copies=total_copies,
                    available_copies=total_copies,
                )
            )
        logger.info("Book registered | id=%s isbn=%s copies=%d", book.id, book.isbn, total_copies)
        return book

    def get(self, book_id):
        book = self.books.find_by_id(book_id)
        if book is None:
            raise NotFoundError(f"No book with id {book_id}.")
        return book

    def list_books(self):
        return self.books.find_all()

    def list_available(self):
        return [b for b in self.books.find_all() if b.available_copies > 0]

    def search(self, keyword):
        if keyword is None or not keyword.strip():
            return self.list_books()
        term = keyword.strip().lower()
        return [
            b
            for b in self.books.find_all()
            if term in b.title.lower() or term in b.author.lower() or term in b.isbn.lower()
        ]

    def decrement_available(self, book_id):
        with self._transaction():
            book = self.get(book_id)
            if book.available_copies <= 0:
                raise OutOfStockError(f'No copies of "{book.title}" are available.')
            book.available_copies -= 1
            self.books.save(book)
        logger.debug("Stock down | book=%s available=%d/%d", book.id, book.available_copies, book.total_copies)
        return book

    def increment_available(self, book_id):
        with self._transaction():
            book = self.get(book_id)
            book.available_copies = min(book.available_copies + 1, book.total_copies)
            self.books.save(book)
        logger.debug("Stock up | book=%s available=%d/%d", book.id, book.available_copies, book.total_copies)
        return book

    def add_copies(self, book_id, n):
        n = _require_count(n, "Quantity", 1)
        with self._transaction():
            book = self.get(book_id)
            book.total_copies += n
            book.available_copies += n
            self.books.save(book)
        logger.info("Copies added | book=%s n=%d total=%d", book.id, n, book.total_copies)
        return book

    def remove_copies(self, book_id, n):
        # Only copies on the shelf can be removed; loaned ones stay counted.
        n = _require_count(n, "Quantity", 1)
        with self._transaction():
            book = self.get(book_id)
            if book.available_copies < n:
                raise OutOfStockError(
                    f'Only {book.available_copies} copies of "{book.title}" are on the shelf.'
                )
            book.total_copies -= n
            book.available_copies -= n
            self.books.save(book)
        logger.info("Copies removed | book=%s n=%d total=%d", book.id, n, book.total_copies)
        return book
