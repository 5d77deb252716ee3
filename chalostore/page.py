"""
ChaloStore — チェックアウト画面

商品 ID とメールアドレスを入力して POST /orders を呼ぶだけの最小ページ。
"""

CHECKOUT_PAGE = """<!DOCTYPE html>
<html lang="en">
  <head>
    <meta charset="utf-8" />
    <title>ChaloStore Checkout</title>
    <style>
      body { font-family: system-ui, sans-serif; margin: 2rem auto; max-width: 480px; }
      form { display: grid; gap: 1rem; margin-bottom: 1.5rem; }
      label { display: grid; gap: 0.5rem; font-weight: 600; }
      input { padding: 0.6rem; font-size: 1rem; border: 1px solid #ccc; border-radius: 4px; }
      button { padding: 0.75rem 1rem; font-size: 1rem; border: none; border-radius: 4px; background: #2563eb; color: white; cursor: pointer; }
      pre { background: #f4f4f5; padding: 1rem; border-radius: 4px; min-height: 2.5rem; white-space: pre-wrap; }
    </style>
  </head>
  <body>
    <h1>ChaloStore Checkout</h1>
    <p>Enter the product ID and your email to place the order.</p>
    <form id="checkout-form">
      <label>
        Product ID
        <input id="product-id" type="number" min="1" required />
      </label>
      <label>
        Email
        <input id="customer-email" type="email" required />
      </label>
      <button id="submit-button" type="submit">Place order</button>
    </form>
    <pre id="result"></pre>
    <script>
      const form = document.getElementById('checkout-form');
      const result = document.getElementById('result');

      form.addEventListener('submit', async (event) => {
        event.preventDefault();
        result.textContent = 'Processing...';

        const productId = parseInt(document.getElementById('product-id').value, 10);
        const email = document.getElementById('customer-email').value;

        try {
          const response = await fetch('/orders', {
            method: 'POST',
            headers: { 'Content-Type': 'application/json' },
            body: JSON.stringify({ productId, customerEmail: email })
          });

          if (response.ok) {
            const order = await response.json();
            result.textContent = `Order ${order.id} created for product ${order.productId}`;
          } else {
            result.textContent = `Error: ${await response.text()}`;
          }
        } catch (error) {
          result.textContent = `Error: ${error}`;
        }
      });
    </script>
  </body>
</html>
"""
