# storefront_e2e/pages/checkout_page.py
from storefront_e2e.pages.base_page import BasePage


class CheckoutPage(BasePage):
    """Checkout information, overview and confirmation steps."""

    def fill_details(self, first_name: str, last_name: str, postal_code: str) -> None:
        self.fill(self.data_test("firstName"), first_name)
        self.fill(self.data_test("lastName"), last_name)
        self.fill(self.data_test("postalCode"), postal_code)

    def complete(self) -> None:
        self.click(self.data_test("continue"))
        self.click(self.data_test("finish"))

    def is_order_confirmed(self) -> bool:
        # text= matching is case-insensitive
        return self.is_visible("text=Thank you for your order")
