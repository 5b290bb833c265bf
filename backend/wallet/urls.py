"""
Wallet app URL configuration.

URL prefix (registered in ``backend/urls.py``)::

    path('api/wallet/', include('wallet.urls'))
"""

from django.urls import path

from . import views

app_name = "wallet"

urlpatterns = [
    path("", views.WalletView.as_view(), name="wallet-detail"),
    path("top-up/", views.TopUpView.as_view(), name="wallet-top-up"),
    path("reconcile/", views.ReconcileView.as_view(), name="wallet-reconcile"),
]
