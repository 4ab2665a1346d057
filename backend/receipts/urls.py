from django.urls import path
from . import views

urlpatterns = [
    path('receipts/', views.generate_receipt, name='receipt-generate'),
    path('receipts/amount-in-words/', views.amount_words_preview, name='receipt-amount-in-words'),
]
