# storefront_e2e/pages/items_page.py
from storefront_e2e.pages.base_page import BasePage


class ItemsPage(BasePage):
    """Product inventory and cart."""

    CART_LINK = "#shopping_cart_container > a"

    def add_to_cart(self, product_name: str) -> None:
        self.click(f"//div[text()='{product_name}']/following::button[1]")

    def open_cart(self) -> None:
        self.click(self.CART_LINK)

    def is_in_cart(self, product_name: str) -> bool:
        return self.is_visible(f"text={product_name}")

    def checkout(self) -> None:
        self.click(self.data_test("checkout"))

    def add_to_cart_and_checkout(self, product_name: str) -> bool:
        """
        Add the product, open the cart and start checkout.

        Returns whether the product was visible in the cart before checkout.
        """
        self.add_to_cart(product_name)
        self.open_cart()
        in_cart = self.is_in_cart(product_name)
        self.logger.info("Product added to cart", product=product_name, visible_in_cart=in_cart)
        self.checkout()
        return in_cart

    def is_products_page(self) -> bool:
        return self.is_visible("text=Products")
