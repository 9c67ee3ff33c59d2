"""Tests for the product repository."""

import uuid
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from src.models.product import Product
from src.services.product_store import ProductRepository, StoreError


def _product(**overrides: object) -> Product:
    values: dict[str, object] = {
        "item_name": "Veg Biryani",
        "sell_price": Decimal("180"),
        "type": "Veg",
        "gst_enabled": True,
        "gst_percentage": 5,
        "gst_amount": Decimal("9.00"),
        "total_price": Decimal("189.00"),
        "barcode": "004211337001",
        "image_url": "",
    }
    values.update(overrides)
    return Product(**values)


@pytest.fixture
def mock_session() -> AsyncMock:
    """Create a mock async database session."""
    session = AsyncMock()
    session.add = MagicMock()
    session.flush = AsyncMock()
    session.refresh = AsyncMock()
    session.commit = AsyncMock()
    return session


class TestInsert:
    """Tests for ProductRepository.insert."""

    async def test_insert_adds_and_flushes(self, mock_session: AsyncMock) -> None:
        """Test that the product is added, flushed and refreshed."""
        product = _product()
        repo = ProductRepository(mock_session)

        result = await repo.insert(product)

        assert result is product
        mock_session.add.assert_called_once_with(product)
        mock_session.flush.assert_awaited_once()
        mock_session.refresh.assert_awaited_once_with(product)

    async def test_insert_wraps_integrity_error(self, mock_session: AsyncMock) -> None:
        """Test that a duplicate barcode surfaces as StoreError."""
        mock_session.flush.side_effect = IntegrityError("INSERT", {}, Exception("dup"))
        repo = ProductRepository(mock_session)

        with pytest.raises(StoreError):
            await repo.insert(_product())


class TestFindById:
    """Tests for ProductRepository.find_by_id."""

    async def test_returns_product(self, mock_session: AsyncMock) -> None:
        """Test lookup by primary key."""
        product = _product()
        mock_session.get.return_value = product
        product_id = uuid.uuid4()

        result = await ProductRepository(mock_session).find_by_id(product_id)

        assert result is product
        mock_session.get.assert_awaited_once_with(Product, product_id)

    async def test_returns_none_when_missing(self, mock_session: AsyncMock) -> None:
        """Test that a missing id returns None."""
        mock_session.get.return_value = None
        assert await ProductRepository(mock_session).find_by_id(uuid.uuid4()) is None

    async def test_wraps_database_error(self, mock_session: AsyncMock) -> None:
        """Test that connection failures surface as StoreError."""
        mock_session.get.side_effect = OperationalError("SELECT", {}, Exception("down"))

        with pytest.raises(StoreError):
            await ProductRepository(mock_session).find_by_id(uuid.uuid4())


class TestUpdate:
    """Tests for ProductRepository.update."""

    async def test_applies_values(self, mock_session: AsyncMock) -> None:
        """Test that column values are set on the loaded product."""
        product = _product()
        mock_session.get.return_value = product

        result = await ProductRepository(mock_session).update(
            uuid.uuid4(), {"item_name": "Chicken Biryani", "type": "Non-Veg"}
        )

        assert result is product
        assert product.item_name == "Chicken Biryani"
        assert product.type == "Non-Veg"
        mock_session.flush.assert_awaited_once()

    async def test_missing_product_returns_none(self, mock_session: AsyncMock) -> None:
        """Test that updating an unknown id returns None without flushing."""
        mock_session.get.return_value = None

        result = await ProductRepository(mock_session).update(uuid.uuid4(), {"item_name": "X"})

        assert result is None
        mock_session.flush.assert_not_awaited()

    async def test_wraps_flush_error(self, mock_session: AsyncMock) -> None:
        """Test that flush failures surface as StoreError."""
        mock_session.get.return_value = _product()
        mock_session.flush.side_effect = OperationalError("UPDATE", {}, Exception("down"))

        with pytest.raises(StoreError):
            await ProductRepository(mock_session).update(uuid.uuid4(), {"item_name": "X"})


class TestDelete:
    """Tests for ProductRepository.delete."""

    async def test_deletes_and_returns_product(self, mock_session: AsyncMock) -> None:
        """Test that the loaded product is deleted and returned."""
        product = _product()
        mock_session.get.return_value = product

        result = await ProductRepository(mock_session).delete(uuid.uuid4())

        assert result is product
        mock_session.delete.assert_awaited_once_with(product)
        mock_session.flush.assert_awaited_once()

    async def test_missing_product_returns_none(self, mock_session: AsyncMock) -> None:
        """Test that deleting an unknown id returns None."""
        mock_session.get.return_value = None

        assert await ProductRepository(mock_session).delete(uuid.uuid4()) is None
        mock_session.delete.assert_not_awaited()


class TestListAll:
    """Tests for ProductRepository.list_all."""

    async def test_returns_scalars(self, mock_session: AsyncMock) -> None:
        """Test that query results are returned as products."""
        products = [_product(barcode="000000000002"), _product(barcode="000000000001")]
        mock_result = MagicMock()
        mock_result.scalars.return_value.all.return_value = products
        mock_session.execute.return_value = mock_result

        result = await ProductRepository(mock_session).list_all()

        assert result == products

    async def test_orders_newest_first(self, mock_session: AsyncMock) -> None:
        """Test that the query orders by created_at descending."""
        mock_result = MagicMock()
        mock_result.scalars.return_value.all.return_value = []
        mock_session.execute.return_value = mock_result

        await ProductRepository(mock_session).list_all()

        statement = mock_session.execute.call_args[0][0]
        assert "ORDER BY products.created_at DESC" in str(statement)

    async def test_wraps_database_error(self, mock_session: AsyncMock) -> None:
        """Test that query failures surface as StoreError."""
        mock_session.execute.side_effect = OperationalError("SELECT", {}, Exception("down"))

        with pytest.raises(StoreError):
            await ProductRepository(mock_session).list_all()


class TestBarcodeExists:
    """Tests for ProductRepository.barcode_exists."""

    @pytest.mark.parametrize("found", [True, False])
    async def test_reports_existence(self, mock_session: AsyncMock, found: bool) -> None:
        """Test that the EXISTS query result is returned as a bool."""
        mock_result = MagicMock()
        mock_result.scalar.return_value = found
        mock_session.execute.return_value = mock_result

        assert await ProductRepository(mock_session).barcode_exists("000000000001") is found


class TestListImageUrls:
    """Tests for ProductRepository.list_image_urls."""

    async def test_returns_url_set(self, mock_session: AsyncMock) -> None:
        """Test that referenced URLs are collected into a set."""
        mock_result = MagicMock()
        mock_result.fetchall.return_value = [("https://a/1.png",), ("https://a/2.png",)]
        mock_session.execute.return_value = mock_result

        urls = await ProductRepository(mock_session).list_image_urls()

        assert urls == {"https://a/1.png", "https://a/2.png"}


class TestCommit:
    """Tests for ProductRepository.commit."""

    async def test_commits_session(self, mock_session: AsyncMock) -> None:
        """Test that commit is delegated to the session."""
        await ProductRepository(mock_session).commit()
        mock_session.commit.assert_awaited_once()

    async def test_wraps_commit_error(self, mock_session: AsyncMock) -> None:
        """Test that commit failures surface as StoreError."""
        mock_session.commit.side_effect = OperationalError("COMMIT", {}, Exception("down"))

        with pytest.raises(StoreError):
            await ProductRepository(mock_session).commit()


class TestRollback:
    """Tests for ProductRepository.rollback."""

    async def test_rolls_back_session(self, mock_session: AsyncMock) -> None:
        """Test that rollback is delegated to the session."""
        await ProductRepository(mock_session).rollback()
        mock_session.rollback.assert_awaited_once()

    async def test_wraps_rollback_error(self, mock_session: AsyncMock) -> None:
        """Test that rollback failures surface as StoreError."""
        mock_session.rollback.side_effect = OperationalError("ROLLBACK", {}, Exception("down"))

        with pytest.raises(StoreError):
            await ProductRepository(mock_session).rollback()
