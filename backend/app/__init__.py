"""Бэкенд бронирования дат поверх каталога Shopify."""
